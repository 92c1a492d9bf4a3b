# -*- coding: utf-8 -*-
"""
GTFS feed loader.

Bulk-loads a directory of GTFS feeds into a single relational store, tagging
every row with the feed it came from.
"""

__version__ = "0.3.0"
