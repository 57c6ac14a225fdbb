"""Tests for canopy.routing.route: entry matching and parameter extraction."""

import re

from canopy.routing.route import ResponseDefaults, RouteEntry


def _handler(context, next):
    return None


def _entry(path, methods=("GET",), **kwargs) -> RouteEntry:
    return RouteEntry(methods=frozenset(methods), path=path, handler=_handler, **kwargs)


class TestResponseDefaults:
    def test_defaults(self) -> None:
        defaults = ResponseDefaults()
        assert defaults.status == 200
        assert defaults.content_type == "text/plain; charset=utf-8"
        assert defaults.headers == ()


class TestMethodFiltering:
    def test_listed_method_matches(self) -> None:
        assert _entry("/users").matches("/users", "GET")

    def test_other_method_rejected(self) -> None:
        assert not _entry("/users").matches("/users", "POST")

    def test_empty_method_set_accepts_any(self) -> None:
        entry = _entry("/users", methods=())
        for method in ("GET", "POST", "DELETE", "PATCH"):
            assert entry.matches("/users", method)


class TestPathMatching:
    def test_root_matches_only_root(self) -> None:
        entry = _entry("/")
        assert entry.matches("/", "GET")
        assert not entry.matches("/about", "GET")

    def test_parameter_pattern(self) -> None:
        entry = _entry("/user/:id")
        assert entry.matches("/user/7", "GET")
        assert not entry.matches("/user", "GET")

    def test_wildcard_matches_every_path(self) -> None:
        entry = _entry("*", methods=())
        assert entry.matches("/", "GET")
        assert entry.matches("/deep/nested/path", "POST")

    def test_regex_is_searched(self) -> None:
        entry = _entry(re.compile(r"^/api/v\d+"))
        assert entry.matches("/api/v2/users", "GET")
        assert not entry.matches("/web", "GET")


class TestStaticEntries:
    def test_prefix_match(self) -> None:
        entry = _entry("/public", static=True)
        assert entry.matches("/public/css/site.css", "GET")
        assert entry.matches("/public", "GET")

    def test_outside_prefix_rejected(self) -> None:
        entry = _entry("/public", static=True)
        assert not entry.matches("/private/file.txt", "GET")

    def test_static_method_filter_still_applies(self) -> None:
        entry = _entry("/public", static=True)
        assert not entry.matches("/public/a.txt", "POST")


class TestMountedEntries:
    def test_path_is_relative_to_root(self) -> None:
        entry = _entry("/users", root="/api")
        assert entry.matches("/api/users", "GET")
        assert not entry.matches("/users", "GET")

    def test_mounted_root_pattern(self) -> None:
        entry = _entry("/", root="/api")
        assert entry.matches("/api", "GET")
        assert entry.matches("/api/", "GET")
        assert not entry.matches("/api/users", "GET")

    def test_scoped_wildcard(self) -> None:
        entry = _entry("*", methods=(), root="/admin")
        assert entry.matches("/admin/settings", "GET")
        assert not entry.matches("/public", "GET")

    def test_relative_path(self) -> None:
        assert _entry("/users", root="/api").relative_path("/api/users") == "/users"
        assert _entry("/users", root="/api").relative_path("/api") == "/"
        assert _entry("/users").relative_path("/users") == "/users"


class TestExtractParams:
    def test_named_params(self) -> None:
        assert _entry("/user/:id").extract_params("/user/7") == {"id": "7"}

    def test_mounted_params(self) -> None:
        entry = _entry("/users/:id", root="/api")
        assert entry.extract_params("/api/users/3") == {"id": "3"}

    def test_non_matching_path_gives_empty(self) -> None:
        assert _entry("/user/:id").extract_params("/posts/1") == {}

    def test_outside_root_gives_empty(self) -> None:
        assert _entry("/users/:id", root="/api").extract_params("/users/3") == {}

    def test_wildcard_regex_and_static_give_empty(self) -> None:
        assert _entry("*").extract_params("/user/7") == {}
        assert _entry(re.compile(r"^/user/(\d+)")).extract_params("/user/7") == {}
        assert _entry("/public", static=True).extract_params("/public/a.css") == {}


class TestDescribe:
    def test_methods_sorted(self) -> None:
        info = _entry("/users", methods=("POST", "GET")).describe()
        assert info == {"path": "/users", "methods": "GET, POST", "static": False}

    def test_any_method(self) -> None:
        assert _entry("*", methods=()).describe()["methods"] == "ANY"

    def test_regex_path_shown_as_pattern(self) -> None:
        assert _entry(re.compile("^/x")).describe()["path"] == "^/x"
