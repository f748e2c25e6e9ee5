"""Permit lookups on the Walloon BDES cadastral map portal.

The package drives the BDES map consultation with Playwright, finds the
cadastral parcel behind a postal address and reports the most recent
"Permis délivré" procedure date recorded for it.
"""
