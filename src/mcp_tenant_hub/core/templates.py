"""
``{{name}}`` placeholder rendering for server argument templates.
"""

import json
import re
from typing import Any, List, Mapping, Optional, Sequence

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def format_value(value: Any) -> str:
    """
    Text form of a JSON value as it appears on a command line.

    Strings are used as is. Booleans render as ``true``/``false`` and
    integral floats without a trailing ``.0``; everything else is JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return json.dumps(value, default=str)


def render_template(template: str, variables: Optional[Mapping[str, Any]]) -> str:
    """
    Fill ``{{name}}`` placeholders from ``variables``.

    Placeholders whose name is not in ``variables`` are left as written.

    Args:
        template: String possibly containing placeholders
        variables: Placeholder name to value

    Returns:
        Rendered string
    """
    if not variables:
        return template

    def _substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in variables and variables[key] is not None:
            return format_value(variables[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def render_args(templates: Sequence[Any], variables: Optional[Mapping[str, Any]]) -> List[Any]:
    """Render every string element of an argument list; other elements pass through."""
    return [
        render_template(template, variables) if isinstance(template, str) else template
        for template in templates
    ]


def find_placeholders(templates: Sequence[Any]) -> List[str]:
    """List placeholder names used by an argument list, in first-seen order."""
    names: List[str] = []
    for template in templates:
        if not isinstance(template, str):
            continue
        for name in PLACEHOLDER_PATTERN.findall(template):
            if name not in names:
                names.append(name)
    return names
