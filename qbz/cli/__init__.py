"""
Command Line Layer.

Typer commands and Rich formatters built on top of the client layer.
"""
