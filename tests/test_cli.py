import json
import textwrap
from pathlib import Path

from typer.testing import CliRunner

from gurl.cli import app

runner = CliRunner()

MAIN_GO = textwrap.dedent(
    """
    package main

    import "github.com/gin-gonic/gin"

    func Ping(c *gin.Context) {
        c.GetHeader("Authorization")
    }

    func main() {
        r := gin.Default()
        v1 := r.Group("/v1")
        v1.GET("/ping", Ping)
        r.Run(":9000")
    }
    """
)


def make_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "main.go").write_text(MAIN_GO, encoding="utf-8")
    return repo


def test_handlers_json_output(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["handlers", str(repo), "--format", "json"])
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    assert data[0]["handler"]["name"] == "Ping"
    assert data[0]["routes"][0]["path"] == "/v1/ping"


def test_routes_table_lists_route(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["routes", str(repo)])
    assert res.exit_code == 0, res.output
    assert "/v1/ping" in res.output
    assert "Ping" in res.output


def test_curl_uses_inferred_base_url_and_extra_header(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["curl", str(repo), "Ping", "-H", "X-Tenant: acme"])
    assert res.exit_code == 0, res.output
    assert "'http://localhost:9000/v1/ping'" in res.output
    assert "-H 'X-Tenant: acme'" in res.output
    assert "-H 'Authorization: Bearer <token>'" in res.output


def test_curl_rejects_malformed_header(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["curl", str(repo), "Ping", "-H", "broken"])
    assert res.exit_code != 0


def test_curl_unknown_handler_fails(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["curl", str(repo), "Nope"])
    assert res.exit_code == 1


def test_base_url_command(tmp_path: Path):
    repo = make_repo(tmp_path)
    res = runner.invoke(app, ["base-url", str(repo)])
    assert res.exit_code == 0
    assert "http://localhost:9000" in res.output


def test_base_url_command_without_server_start(tmp_path: Path):
    repo = tmp_path / "empty"
    repo.mkdir()
    res = runner.invoke(app, ["base-url", str(repo)])
    assert res.exit_code == 1
    assert "Could not infer" in res.output


EXTRA_GO = textwrap.dedent(
    """
    package main

    import "github.com/gin-gonic/gin"

    func Ping(c *gin.Context) {
        c.Query("verbose")
    }

    func Pong(c *gin.Context) {}
    """
)


def test_handlers_scoped_to_one_file(tmp_path: Path):
    repo = make_repo(tmp_path)
    (repo / "extra.go").write_text(EXTRA_GO, encoding="utf-8")
    res = runner.invoke(app, ["handlers", str(repo), "--file", "extra.go", "--format", "json"])
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    assert [d["handler"]["name"] for d in data] == ["Ping", "Pong"]
    assert all(d["handler"]["file_path"] == "extra.go" for d in data)


def test_curl_scoped_to_one_file_still_uses_repo_wide_routes(tmp_path: Path):
    repo = make_repo(tmp_path)
    (repo / "extra.go").write_text(EXTRA_GO, encoding="utf-8")
    res = runner.invoke(app, ["curl", str(repo), "Ping", "--file", "extra.go"])
    assert res.exit_code == 0, res.output
    assert "'http://localhost:9000/v1/ping?verbose=<verbose>'" in res.output

    res = runner.invoke(app, ["curl", str(repo), "Pong", "--file", "main.go"])
    assert res.exit_code == 1
