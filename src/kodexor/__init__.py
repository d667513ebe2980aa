"""kodexor: export a project directory as a single markdown document."""

__version__ = "0.3.0"
