"""
Base Action Infrastructure

Provides the foundation for scripted page actions:
- Action decorator for registration
- ActionSpec describing an action's parameters
- Action registry for lookup and discovery

Scripts can only call what is registered here, and every registered
function receives nothing but the Playwright page and its own arguments.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)


ActionFunction = Callable[..., Awaitable[Any]]


@dataclass
class ActionSpec:
    """
    Registered script action.

    Attributes:
        name: Identifier used in scripts (e.g., "click")
        description: Human-readable description
        params: Required parameter names, in positional order
        optional: Optional trailing parameter names, in positional order
        leading: Optional parameters that come before the required ones;
            they are bound only when every argument is given
        function: Coroutine function called as function(page, *args)
    """

    name: str
    description: str
    params: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    leading: tuple[str, ...] = ()
    function: Optional[ActionFunction] = field(default=None, repr=False)

    @property
    def all_params(self) -> tuple[str, ...]:
        return self.leading + self.params + self.optional

    def accepts(self, arg_count: int) -> bool:
        return len(self.params) <= arg_count <= len(self.all_params)

    @property
    def usage(self) -> str:
        parts = [
            self.name,
            *(f"[{p}]" for p in self.leading),
            *self.params,
            *(f"[{p}]" for p in self.optional),
        ]
        return " ".join(parts)


# Action registry for all registered actions
_ACTION_REGISTRY: dict[str, ActionSpec] = {}


def action(
    name: str,
    description: str,
    params: tuple[str, ...] = (),
    optional: tuple[str, ...] = (),
    leading: tuple[str, ...] = (),
):
    """
    Decorator to register a coroutine as a script action.

    Args:
        name: Action identifier (e.g., "click")
        description: Human-readable description of what the action does
        params: Required parameter names
        optional: Optional parameter names following the required ones
        leading: Optional parameter names preceding the required ones

    Example:
        >>> @action(
        ...     name="click",
        ...     description="Click the first element matching a selector",
        ...     params=("selector",),
        ... )
        ... async def click(page, selector: str) -> None:
        ...     await page.click(selector)
    """

    def decorator(func: ActionFunction) -> ActionFunction:
        if name in _ACTION_REGISTRY:
            logger.debug(f"Re-registering action '{name}'")

        _ACTION_REGISTRY[name] = ActionSpec(
            name=name,
            description=description,
            params=tuple(params),
            optional=tuple(optional),
            leading=tuple(leading),
            function=func,
        )

        func.action_name = name
        return func

    return decorator


def get_action(name: str) -> Optional[ActionSpec]:
    """Get an action by name from the registry."""
    return _ACTION_REGISTRY.get(name)


def get_all_actions() -> dict[str, ActionSpec]:
    """Get all registered actions."""
    return _ACTION_REGISTRY.copy()


def get_action_schemas() -> list[dict[str, Any]]:
    """
    Describe every action for clients building scripts.

    Returns list of action definitions with name, description, usage and
    a JSON Schema for the object form.
    """
    return [
        {
            "name": spec.name,
            "description": spec.description,
            "usage": spec.usage,
            "parameters": {
                "type": "object",
                "properties": {p: {"type": "string"} for p in spec.all_params},
                "required": list(spec.params),
            },
        }
        for spec in sorted(_ACTION_REGISTRY.values(), key=lambda s: s.name)
    ]
