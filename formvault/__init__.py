"""FormVault: secure media access and bulk export for form submissions."""

__version__ = "0.1.0"
