"""
orion-discard: material discard tracking.

Operators pick a farm, section and field, scan a barcode, and the scanned
material is checked against previously recorded discards before being marked
as discarded. A live table mirrors the records of the selected field.
"""

__version__ = "1.0.0"
