"""
Template publication gate
"""

from .template_gate import TemplateGate

__all__ = ["TemplateGate"]
