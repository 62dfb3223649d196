"""Zone Defense - prompt for a firewall zone the first time a network connection is seen."""

__version__ = "0.1.0"
