"""HC Register: collaborative house connection register with BOQ costing."""

__version__ = "1.0.0"
