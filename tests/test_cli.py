from unittest.mock import patch

import pytest

from chains import cli_query
from common.errors import IndexWriteError
from ingestion import cli_build_index
from ingestion.document_models import Chunk
from ingestion.index_builder import write_index

TEXT = (
    "Brew potions at the alchemy table. Each recipe needs two herbs and a flask of "
    "water, and the result depends on herb quality."
)


def test_query_cli_prints_ranked_sources(tmp_path, capsys):
    path = tmp_path / "docs_index.json"
    write_index(
        [
            Chunk(id="a", title="Crafting", section="Potions", url="https://d.example.com/c", text=TEXT),
            Chunk(id="b", title="Fishing Guide", section="Rods", url="", text="Cast at dawn. " * 10),
        ],
        path,
    )
    cli_query.main(["how do I craft potions", "--index", str(path), "--no-llm"])
    out = capsys.readouterr().out
    assert "Crafting / Potions (https://d.example.com/c)" in out
    assert "Fishing Guide" not in out


def test_query_cli_missing_index_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        cli_query.main(["potions", "--index", str(tmp_path / "missing.json"), "--no-llm"])
    assert exc.value.code == 2


def test_build_cli_applies_overrides():
    with patch.object(cli_build_index, "ingest_site") as ingest:
        cli_build_index.main(["--max_pages", "5", "--delay", "0", "--out", "x.json", "--no-progress"])
    kwargs = ingest.call_args.kwargs
    assert kwargs["config"].crawl.max_pages == 5
    assert kwargs["config"].crawl.request_delay == 0
    assert str(kwargs["out_path"]) == "x.json"
    assert kwargs["show_progress"] is False


def test_build_cli_write_failure_exits():
    err = IndexWriteError("x.json", "disk full")
    with patch.object(cli_build_index, "ingest_site", side_effect=err):
        with pytest.raises(SystemExit) as exc:
            cli_build_index.main(["--no-progress"])
    assert exc.value.code == 1
