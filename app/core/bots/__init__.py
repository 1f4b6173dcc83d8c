# app/core/bots/__init__.py
"""
Bot bundles: texts, catalogs and validators, one sub-package per bot.

- onboarding: job-seeker registration (ru/uz)
"""
