"""Domain core: models, errors, barcode helpers and validators."""
