"""Ordered route table.

Routes are registered during setup and frozen when the app freezes.
Matching is a linear scan per method in registration order; the first
structural match wins, so specific templates must be registered before
general ones.
"""

from stowage.routing.route import Route, RouteMatch


class Router:
    """Per-method ordered route table.

    Usage::

        router = Router()
        router.add(Route("/:backend/presign", handler, frozenset({"GET"})))
        router.add(Route("/:backend", upload, frozenset({"POST"})))
        router.compile()
        match = router.match("GET", "/cache/presign")

    A ``GET`` registration is also reachable under ``HEAD``.
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: dict[str, list[Route]] = {}
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        methods = set(route.methods)
        if "GET" in methods:
            methods.add("HEAD")
        for method in sorted(methods):
            self._routes.setdefault(method, []).append(route)

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes, each once, in registration order."""
        seen: set[int] = set()
        result: list[Route] = []
        for table in self._routes.values():
            for route in table:
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)
        return result

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Resolve *method* and *path* to the first matching route.

        Returns ``None`` when nothing matches; the caller answers 404.
        """
        for route in self._routes.get(method.upper(), ()):
            params = route.pattern.match(path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None
