"""Modules — self-contained groups of routes mounted under a prefix.

A module is a dispatcher with its own router and middleware. Mount it
on a parent and it handles every URI under the mount point, seeing
them relative to that point::

    class Admin(Module):
        def routes(self, router):
            router.add_route(r"GET:^/$", "Dashboard::index")
            router.add_route(r"GET:^/users/(\\d+)$", "Users::show")

    app.mount("/admin", Admin(app.services))

    # GET /admin/users/7 -> Users.show(request, "7"), request.uri == "/users/7"
"""

from typing import Any

from nestling.dispatcher import Dispatcher
from nestling.routing.router import Router
from nestling.services import ServiceContainer


class Module(Dispatcher):
    """A mountable dispatcher sharing its parent's services."""

    def __init__(self, services: ServiceContainer, **options: Any) -> None:
        super().__init__(services, **options)

    def setup(self) -> None:
        self.routes(self.router)

    def routes(self, router: Router) -> None:
        """Register this module's routes. Override in subclasses."""
