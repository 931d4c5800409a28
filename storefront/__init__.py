"""storefront - email-OTP account flows and payment verification for an e-commerce backend."""

__version__ = "0.1.0"
