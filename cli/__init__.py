"""Command-line client for the SpaceAPI server.

The Typer application lives in ``cli.app`` and is installed as the ``spaceapi`` script.
"""
