"""prsync: keep a GitHub project board in sync with a roster of pull-request authors."""

__version__ = "0.1.0"
