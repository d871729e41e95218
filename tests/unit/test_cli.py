"""Tests for the kudeploy command line."""

import json

import pytest

from kudeploy.cli.main import build_parser, load_deploy_config, main


class TestParser:
    """Tests for argument parsing."""

    def test_deploy_args(self):
        args = build_parser().parse_args([
            "deploy", "k8s/dev",
            "--image", "app=app:v1", "--image", "worker=worker:v1",
            "--label", "team=payments",
            "--default-repo", "gcr.io/proj",
            "--namespace", "payments",
        ])

        assert args.command == "deploy"
        assert args.overlay == "k8s/dev"
        assert args.image == ["app=app:v1", "worker=worker:v1"]
        assert args.label == ["team=payments"]

    def test_cli_overrides_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"deploy": {"kustomize_path": "from-file", "namespace": "file-ns"}}))
        args = build_parser().parse_args(["cleanup", "from-cli", "--config", str(path), "--context", "ctx"])

        config = load_deploy_config(args)

        assert config.kustomize_path == "from-cli"
        assert config.namespace == "file-ns"
        assert config.kube_context == "ctx"


class TestMain:
    """Tests for main()."""

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_deps(self, tmp_path, capsys):
        (tmp_path / "kustomization.yaml").write_text("resources: [d.yaml]\n")

        assert main(["deps", str(tmp_path), "--config", str(tmp_path / "none.json")]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines == [str(tmp_path / "kustomization.yaml"), str(tmp_path / "d.yaml")]

    def test_deps_missing_descriptor(self, tmp_path, capsys):
        assert main(["deps", str(tmp_path), "--config", str(tmp_path / "none.json")]) == 1

        assert "not found" in capsys.readouterr().err

    def test_deploy_bad_image(self, tmp_path, capsys):
        code = main(["deploy", str(tmp_path), "--image", "noequals", "--config", str(tmp_path / "none.json")])

        assert code == 1
        assert "NAME=TAG" in capsys.readouterr().err

    def test_deps_malformed_config(self, tmp_path, capsys):
        """Test that a malformed config file is reported instead of ignored."""
        (tmp_path / "kustomization.yaml").write_text("resources: [d.yaml]\n")
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert main(["deps", str(tmp_path), "--config", str(path)]) == 1

        assert "config.json" in capsys.readouterr().err
