# app/core/bots/onboarding/__init__.py
"""
Job-seeker onboarding bot bundle.

Sub-modules:
    config     : translations, language buttons, region catalog
    texts      : get_text(key, lang, **params) accessor
    regions    : region keyboard + label → canonical key lookup
    validators : email / password / attachment checks
"""
