"""
Entry point for running BabelChat as a module.

Usage:
    python -m babelchat --help
    python -m babelchat signup alice --language en
    python -m babelchat send --to user_123 "Hello"
"""
from .cli import app


if __name__ == "__main__":
    app()
