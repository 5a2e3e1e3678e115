"""
Base Component class for Catalyst UI components.

HTML is produced by small Python classes instead of a template engine. Every
component renders to a string and escapes untrusted text on the way out.
"""

from typing import Any, Optional
import html


class Component:
    """Base class for all UI components.

    Subclasses implement `render()`; the static helpers cover escaping and
    attribute/class building so markup stays consistent.
    """

    def render(self) -> str:
        """Render the component as an HTML string."""
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """Escape HTML entities; None renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Build a CSS class string with conditional classes.

        Example:
            >>> Component.classes("nav-link", active=True, disabled=False)
            'nav-link active'
        """
        classes = [a for a in args if a]
        classes.extend(key.replace("_", "-") for key, value in conditionals.items() if value)
        return " ".join(classes)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Build HTML attributes from keyword arguments.

        Example:
            >>> Component.attributes(id="menu", data_page="empleos", hidden=True)
            'id="menu" data-page="empleos" hidden'
        """
        result = []
        for key, value in attrs.items():
            # Trailing underscore for reserved names: class_ -> class, for_ -> for
            if key.endswith("_"):
                key = key[:-1]
            else:
                key = key.replace("_", "-")

            if value is True:
                result.append(key)
            elif value is not False and value is not None:
                result.append(f'{key}="{html.escape(str(value))}"')

        return " ".join(result)
