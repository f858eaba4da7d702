"""Template expressions, named transforms and resolution."""

from notifications_messaging.templates.expressions import compile_expression
from notifications_messaging.templates.resolver import TemplateResolver
from notifications_messaging.templates.transforms import DEFAULT_TRANSFORMS, TransformRegistry

__all__ = [
    "DEFAULT_TRANSFORMS",
    "TemplateResolver",
    "TransformRegistry",
    "compile_expression",
]
