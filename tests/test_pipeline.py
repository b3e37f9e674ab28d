import threading
import textwrap
from pathlib import Path

import pytest

from gurl.domain.models import GenerationOptions, SourceFile
from gurl.orchestrator.pipeline import ScanCancelled, analyze_sources, load_sources, run_analyze
from gurl.requestgen.curl import generate_curl

ROUTER_GO = textwrap.dedent(
    """
    package main

    import (
        "github.com/gin-gonic/gin"

        "example.com/app/handlers"
    )

    func main() {
        r := gin.Default()
        api := r.Group("/api")
        api.GET("/users/:id", handlers.GetUser)
        api.POST("/signup", handlers.Signup)
        r.GET("/dangling", handlers.NotThere)
    }
    """
)

HANDLERS_GO = textwrap.dedent(
    """
    package handlers

    import "github.com/gin-gonic/gin"

    func GetUser(c *gin.Context) {
        id := c.Param("id")
        filter := c.Query("filter")
        c.JSON(200, gin.H{"id": id, "filter": filter})
    }

    func Signup(c *gin.Context) {
        if err := c.ShouldBindJSON(&Signup{}); err != nil {
            c.AbortWithStatus(400)
        }
    }

    func Unrouted(c *gin.Context) {}
    """
)

MODELS_GO = textwrap.dedent(
    """
    package handlers

    type Signup struct {
        Email string `json:"email"`
        Age   int
    }
    """
)


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(s, encoding="utf-8")


def sources() -> list[SourceFile]:
    return [
        SourceFile(path="main.go", text=ROUTER_GO),
        SourceFile(path="handlers/users.go", text=HANDLERS_GO),
        SourceFile(path="handlers/models.go", text=MODELS_GO),
    ]


def test_analyze_sources_links_across_files():
    result = analyze_sources(sources())

    assert [h.name for h in result.handlers] == ["GetUser", "Signup", "Unrouted"]
    assert [(r.method, r.path, r.handler_name) for r in result.routes] == [
        ("GET", "/api/users/:id", "GetUser"),
        ("POST", "/api/signup", "Signup"),
    ]
    by_name = {lh.name: lh for lh in result.linked}
    assert by_name["Unrouted"].routes == ()
    assert by_name["GetUser"].routes[0].file_path == "main.go"
    assert by_name["GetUser"].handler.file_path == "handlers/users.go"


def test_scenario_a_end_to_end():
    result = analyze_sources(sources())
    (linked,) = result.find("GetUser")
    curl = generate_curl(linked, linked.routes[0], GenerationOptions(base_url="http://localhost:8080"))
    assert "'http://localhost:8080/api/users/<id>?filter=<filter>'" in curl


def test_scenario_b_end_to_end():
    result = analyze_sources(sources())
    (linked,) = result.find("Signup")
    assert linked.handler.shape.json_type == "Signup"
    curl = generate_curl(linked, linked.routes[0], GenerationOptions(base_url="http://localhost:8080"))
    assert "-d '{\"email\": \"<email>\", \"age\": 0}'" in curl


def test_scenario_c_no_server_start_means_no_inference():
    result = analyze_sources(sources())
    assert result.inferred_base_url is None


def test_run_analyze_reads_repo_and_skips_vendor(tmp_path: Path):
    repo = tmp_path / "repo"
    write(repo / "main.go", ROUTER_GO)
    write(repo / "handlers" / "users.go", HANDLERS_GO)
    write(repo / "vendor" / "github.com" / "x" / "y.go", "func Vendored(c *gin.Context) {}\n")
    write(repo / "README.md", "not go")

    result = run_analyze(repo, workers=2)
    assert result.files_scanned == 2
    assert {s.path for s in result.sources} == {"main.go", str(Path("handlers") / "users.go")}
    assert "Vendored" not in {h.name for h in result.handlers}


def test_load_sources_cancelled_reports_cancelled(tmp_path: Path):
    write(tmp_path / "a.go", "package a\n")
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ScanCancelled):
        load_sources(tmp_path, cancel=cancel)


def test_empty_repo_yields_empty_results(tmp_path: Path):
    result = run_analyze(tmp_path)
    assert result.handlers == []
    assert result.routes == []
    assert result.linked == []
    assert result.inferred_base_url is None
