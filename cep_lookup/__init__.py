"""
                Delivery CEP Lookup

Address lookup service for the delivery storefront checkout.
Resolves Brazilian postal codes (CEP) through ViaCEP, BrasilAPI and
Postmon with ordered fallback and per-provider timeouts.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
