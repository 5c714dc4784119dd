"""
Road network conflation.

Conflates an incoming road line dataset into an authoritative main network by
repeatedly finding geometric conflicts between the two collections and
resolving each one with a delete, node insertion, split or merge.
"""

__version__ = '0.1.0'
