"""Tests for nestling.module — mountable, nested dispatchers."""

import importlib
from pathlib import Path

import pytest

from nestling.app import Application
from nestling.controller import Controller
from nestling.errors import HandlerResolutionError, NotFound
from nestling.http.request import Request
from nestling.module import Module
from nestling.services import ServiceContainer


class Blog(Module):
    def routes(self, router):
        router.add_route(r"GET:^/$", self.index)
        router.add_route(r"GET:^/posts/(\d+)$", self.show)

    def index(self, request):
        return f"blog index at {request.uri_prefix}"

    def show(self, request, post_id):
        return f"post {post_id} via {request.uri}"


class Admin(Module):
    def routes(self, router):
        router.add_route(r"GET:^/$", lambda request: "dashboard")
        router.mount("/blog", Blog(self.services))


class TestModule:
    async def test_routes_hook_registers_routes(self) -> None:
        blog = Blog(ServiceContainer(), offload_sync_handlers=False)
        assert await blog(Request.build("GET", "/posts/4")) == "post 4 via /posts/4"

    async def test_nested_mounts(self) -> None:
        services = ServiceContainer()
        admin = Admin(services, offload_sync_handlers=False)

        assert await admin(Request.build("GET", "/")) == "dashboard"
        assert await admin(Request.build("GET", "/blog")) == "blog index at /blog"

        request = Request.build("GET", "/blog/posts/12")
        assert await admin(request) == "post 12 via /posts/12"
        assert request.prefix_depth == 0

    async def test_unknown_uri_inside_module(self) -> None:
        admin = Admin(ServiceContainer(), offload_sync_handlers=False)
        with pytest.raises(NotFound):
            await admin(Request.build("GET", "/blog/nope"))

    async def test_module_shares_services(self) -> None:
        services = ServiceContainer({"greeting": "hello"})

        class Greet(Module):
            def routes(self, router):
                router.add_route(r"^/$", "Hello::say")

        class Hello(Controller):
            def say(self, request):
                return self.services["greeting"]

        greet = Greet(services, offload_sync_handlers=False)
        greet.resolver.register("Hello", Hello)
        assert await greet(Request.build()) == "hello"

    async def test_module_middleware_runs_inside_mount(self) -> None:
        seen = []

        class Tracked(Module):
            def setup(self) -> None:
                super().setup()
                self.add_middleware(self.track)

            async def track(self, request, next):
                seen.append(request.uri)
                return await next(request)

            def routes(self, router):
                router.add_route(r"^/x$", lambda request: "x")

        services = ServiceContainer()
        parent = Module(services, offload_sync_handlers=False)
        parent.mount("/t", Tracked(services, offload_sync_handlers=False))
        assert await parent(Request.build("GET", "/t/x")) == "x"
        assert seen == ["/x"]

    async def test_module_in_package_init_uses_own_controllers(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        root = tmp_path / "bookshop"
        admin = root / "admin"
        admin.mkdir(parents=True)
        (root / "__init__.py").write_text("")
        (root / "controllers.py").write_text(
            "class Dashboard:\n"
            "    def __init__(self, services=None):\n"
            "        pass\n"
            "    def index(self, request):\n"
            "        return 'shop dashboard'\n"
        )
        (admin / "__init__.py").write_text(
            "from nestling.module import Module\n"
            "\n"
            "class Admin(Module):\n"
            "    def routes(self, router):\n"
            "        router.add_route(r'GET:^/$', 'Dashboard::index')\n"
        )
        (admin / "controllers.py").write_text(
            "class Dashboard:\n"
            "    def __init__(self, services=None):\n"
            "        pass\n"
            "    def index(self, request):\n"
            "        return 'admin dashboard'\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))

        module = importlib.import_module("bookshop.admin")
        nested = module.Admin(ServiceContainer(), offload_sync_handlers=False)
        assert nested.resolver.namespace == "bookshop.admin"
        assert await nested(Request.build()) == "admin dashboard"


class TestNestedInitialisation:
    def test_bad_spec_in_mounted_module_fails_at_parent_init(self) -> None:
        class Broken(Module):
            def routes(self, router):
                router.add_route(r"^/$", "Missing::index")

        app = Application()
        app.mount("/broken", Broken(app.services))
        with pytest.raises(HandlerResolutionError, match="Missing"):
            app.ensure_initialised()

    def test_mounted_modules_initialise_with_parent(self) -> None:
        services = ServiceContainer()
        admin = Admin(services, offload_sync_handlers=False)
        parent = Module(services, offload_sync_handlers=False)
        parent.mount("/admin", admin)
        parent.ensure_initialised()
        assert admin.initialised
        assert admin.router.routes[1].handler.initialised

    def test_dispatcher_used_as_middleware_initialises_with_parent(self) -> None:
        services = ServiceContainer()
        blog = Blog(services, offload_sync_handlers=False)
        parent = Module(services, offload_sync_handlers=False)
        parent.add_middleware(blog)
        parent.ensure_initialised()
        assert blog.initialised
