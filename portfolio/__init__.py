"""Personal portfolio API with a streamed AI project-pitch generator."""

__version__ = "0.1.0"
