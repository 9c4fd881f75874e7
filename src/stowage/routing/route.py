"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass, field

from stowage._internal.types import Handler
from stowage.routing.pattern import CompiledPattern, PathParams, compile_pattern


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created during app setup, compiled into the router at freeze time.
    The template is compiled once, when the route is constructed.
    """

    path: str
    handler: Handler
    methods: frozenset[str]
    name: str | None = None
    pattern: CompiledPattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", compile_pattern(self.path))


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: PathParams
