# app/core/handlers/__init__.py
"""
Bot Handlers Package

Step machines that turn (session, input) into a StepResult.
"""
from app.core.handlers.onboarding_handler import OnboardingHandler

__all__ = [
    "OnboardingHandler",
]
