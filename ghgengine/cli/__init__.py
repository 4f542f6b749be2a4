# -*- coding: utf-8 -*-
"""Command line interface for the GHG engine."""

from ghgengine.cli.main import app

__all__ = ["app"]
