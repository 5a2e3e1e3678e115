"""Submit button component."""

from typing import Optional

from ..base import Component


class SubmitButton(Component):
    def __init__(self, label: str, *, variant: str = "primary", name: Optional[str] = None, value: Optional[str] = None):
        self.label = label
        self.variant = variant
        self.name = name
        self.value = value

    def render(self) -> str:
        attrs = self.attributes(
            type="submit",
            class_=self.classes("btn", f"btn-{self.variant}"),
            name=self.name,
            value=self.value,
        )
        return f"<button {attrs}>{self.escape(self.label)}</button>"
