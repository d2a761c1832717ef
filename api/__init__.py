"""FastAPI gateway and request models"""
# Import app directly from api.main when needed
from . import models

__all__ = ['models']
