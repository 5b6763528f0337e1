import json

import yaml

from netmon.main import build_parser, main


def _config(tmp_path, **storage):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "storage": {"backend": "file", "path": str(tmp_path / "logs.json"), "async_writes": False, **storage},
        "export": {"directory": str(tmp_path / "exports")},
    }))
    return str(path)


def _seed(tmp_path, domains):
    logs = [
        {"url": f"https://{d}/", "domain": d, "method": "GET", "status_code": 200,
         "error_reason": None, "latency_ms": 100, "observed_at": "2026-10-19T08:00:00+00:00"}
        for d in domains
    ]
    (tmp_path / "logs.json").write_text(json.dumps({"network_logs": logs}))


class TestParser:
    def test_subcommands(self):
        args = build_parser().parse_args(["export", "--format", "csv"])
        assert args.command == "export"
        assert args.format == "csv"


class TestStatsCommand:
    def test_empty_store(self, tmp_path, capsys):
        main(["--config", _config(tmp_path), "stats"])
        assert "No recent requests recorded" in capsys.readouterr().out

    def test_text_output(self, tmp_path, capsys):
        _seed(tmp_path, ["api.github.com", "example.com"])
        main(["--config", _config(tmp_path), "stats"])
        out = capsys.readouterr().out
        assert "Requests:        2" in out

    def test_json_output_with_search(self, tmp_path, capsys):
        _seed(tmp_path, ["api.github.com", "example.com"])
        main(["--config", _config(tmp_path), "stats", "--search", "github", "--output", "json"])
        assert json.loads(capsys.readouterr().out)["count"] == 1


class TestExportAndClear:
    def test_export_writes_file(self, tmp_path, capsys):
        _seed(tmp_path, ["api.github.com"])
        main(["--config", _config(tmp_path), "export"])
        path = capsys.readouterr().out.strip()
        with open(path, encoding="utf-8") as f:
            assert json.load(f)["count"] == 1

    def test_clear(self, tmp_path, capsys):
        _seed(tmp_path, ["api.github.com"])
        main(["--config", _config(tmp_path), "clear"])
        data = json.loads((tmp_path / "logs.json").read_text())
        assert data["network_logs"] == []
