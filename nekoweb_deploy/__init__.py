"""nekoweb-deploy: publish a static site build to Nekoweb."""

__version__ = "0.1.0"
