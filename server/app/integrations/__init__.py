"""
Integration modules for the e-signature workflow service

Contains adapters and clients for external systems:
- E-signature providers (DocuSign, Logalty)
"""
