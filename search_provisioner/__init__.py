"""Provision a serverless search project, load data into it, query it, and tear it down."""

__version__ = "0.1.0"
