"""
Export modules for writing conflated collections.
"""

from .export_lines import export_collection, record_to_feature
