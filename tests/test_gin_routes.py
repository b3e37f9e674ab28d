import textwrap

from gurl.extractors.gin.routes import build_group_prefix_map, extract_routes_from_source


def test_extract_routes_method_handle_and_any():
    src = textwrap.dedent(
        """
        package main

        import "github.com/gin-gonic/gin"

        func main() {
            r := gin.Default()
            r.GET("/users/:id", GetUser)
            r.Handle("POST", "/users", h.CreateUser)
            r.Any("/ping", Ping())
            r.Run(":8080")
        }
        """
    )
    routes = extract_routes_from_source(src, {"GetUser", "CreateUser", "Ping"}, file_path="main.go")
    assert [(r.method, r.path, r.handler_name) for r in routes] == [
        ("GET", "/users/:id", "GetUser"),
        ("POST", "/users", "CreateUser"),
        ("ANY", "/ping", "Ping"),
    ]
    assert all(r.file_path == "main.go" for r in routes)
    first = routes[0]
    assert src[first.span.start.offset : first.span.end.offset].startswith('r.GET("/users/:id", GetUser')


def test_extract_routes_drops_unknown_handlers():
    src = textwrap.dedent(
        """
        func setup(r *gin.Engine) {
            r.GET("/known", Known)
            r.GET("/unknown", NotAHandler)
            r.POST("/qualified", pkg.Unknown)
        }
        """
    )
    routes = extract_routes_from_source(src, {"Known"})
    assert [r.handler_name for r in routes] == ["Known"]


def test_handle_with_unrecognized_method_is_ignored():
    src = 'func setup(r *gin.Engine) {\n\tr.Handle("FETCH", "/x", Known)\n\tr.Handle("GET", "/y", Known)\n}\n'
    routes = extract_routes_from_source(src, {"Known"})
    assert [(r.method, r.path) for r in routes] == [("GET", "/y")]


def test_group_prefixes_resolve_transitively():
    src = textwrap.dedent(
        """
        func Register(r *gin.Engine) {
            api := r.Group("/api/")
            v1 := api.Group("v1")
            admin := v1.Group("/admin/")
            admin.DELETE("/users/:id", DeleteUser)
            v1.GET("items", ListItems)
        }
        """
    )
    prefixes = build_group_prefix_map(src)
    assert prefixes["r"] == ""
    assert prefixes["api"] == "/api/"
    assert prefixes["v1"] == "/api/v1"
    assert prefixes["admin"] == "/api/v1/admin/"

    routes = extract_routes_from_source(src, {"DeleteUser", "ListItems"})
    assert [(r.method, r.path) for r in routes] == [
        ("DELETE", "/api/v1/admin/users/:id"),
        ("GET", "/api/v1/items"),
    ]


def test_group_declared_before_its_base_still_resolves():
    src = textwrap.dedent(
        """
        func later() {
            users := api.Group("/users")
            users.GET("", List)
        }

        func main() {
            router := gin.New()
            api := router.Group("/api")
        }
        """
    )
    prefixes = build_group_prefix_map(src)
    assert prefixes["users"] == "/api/users"
    routes = extract_routes_from_source(src, {"List"})
    assert routes[0].path == "/api/users/"


def test_group_prefix_cycle_terminates_and_keeps_first_value():
    src = textwrap.dedent(
        """
        r := gin.Default()
        a := r.Group("/a")
        b := a.Group("/b")
        a = b.Group("/c")
        """
    )
    prefixes = build_group_prefix_map(src)
    assert prefixes["a"] == "/a"
    assert prefixes["b"] == "/a/b"


def test_router_group_parameter_is_a_root_and_alias_is_honoured():
    src = textwrap.dedent(
        """
        import web "github.com/gin-gonic/gin"

        func Mount(rg *web.RouterGroup) {
            v2 := rg.Group("/v2")
            v2.PUT("/things/:id", UpdateThing)
        }
        """
    )
    routes = extract_routes_from_source(src, {"UpdateThing"})
    assert [(r.method, r.path) for r in routes] == [("PUT", "/v2/things/:id")]


def test_unmapped_receiver_gets_no_prefix():
    src = 'func x() {\n\tsomeRouter.GET("/health", Health)\n}\n'
    routes = extract_routes_from_source(src, {"Health"})
    assert routes[0].path == "/health"


def test_group_on_router_from_elsewhere_keeps_its_prefix():
    src = textwrap.dedent(
        """
        func main() {
            r := setupRouter()
            api := r.Group("/api")
            admin := api.Group("/admin")
            api.GET("/users/:id", GetUser)
            admin.DELETE("/users/:id", DeleteUser)
        }
        """
    )
    assert build_group_prefix_map(src)["admin"] == "/api/admin"
    routes = extract_routes_from_source(src, {"GetUser", "DeleteUser"})
    assert [r.path for r in routes] == ["/api/users/:id", "/api/admin/users/:id"]
