"""Spanish identity document OCR core.

Extracts structured identity data from photographs of Spanish DNI and
NIE cards and passports, and checks the document's self-consistency
through mod-23 check letters and ICAO 9303 MRZ check digits.
"""

__version__ = "1.0.0"
