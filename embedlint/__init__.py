"""embedlint: lint code embedded in HTML, XML and Markdown documents."""

__version__ = "0.3.0"
