"""API routes for choreloop."""

from routes.chores import chores_bp
from routes.generator import generator_bp

__all__ = ['chores_bp', 'generator_bp']
