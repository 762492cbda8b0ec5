"""Command-line front end built on Typer and Rich."""
