"""Statelessor: detect stateful code patterns in .NET and Java source trees."""

__version__ = "1.0.0"
