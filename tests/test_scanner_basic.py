from pathlib import Path

from gurl.repo.scanner import read_source, scan_go_files


def test_scan_go_files_prunes_vendor_and_sorts(tmp_path: Path):
    for rel in ["b.go", "a.go", "pkg/c.go", "vendor/lib/d.go", ".git/e.go", "notes.txt"]:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text("package x\n", encoding="utf-8")

    files = scan_go_files(tmp_path)
    rel = [Path(f).relative_to(tmp_path.resolve()).as_posix() for f in files]
    assert rel == ["a.go", "b.go", "pkg/c.go"]

    assert len(scan_go_files(tmp_path, max_files=2)) == 2


def test_read_source_ignores_bad_bytes(tmp_path: Path):
    p = tmp_path / "x.go"
    p.write_bytes(b"package x\n\xff// tail\n")
    assert read_source(str(p)) == "package x\n// tail\n"


def test_read_source_missing_file_is_empty(tmp_path: Path):
    assert read_source(str(tmp_path / "gone.go")) == ""
