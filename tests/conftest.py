"""Shared fixtures: stand-in kustomize and kubectl executables."""

import sys
from pathlib import Path

import pytest

FAKE_KUSTOMIZE = '''
import sys
import time
from pathlib import Path

if sys.argv[1:2] != ["build"] or len(sys.argv) != 3:
    sys.stderr.write("usage: kustomize build DIR\\n")
    sys.exit(2)

overlay = Path(sys.argv[2])
if not (overlay / "kustomization.yaml").exists():
    sys.stderr.write("Error: unable to find kustomization file in " + str(overlay) + "\\n")
    sys.exit(1)
if (overlay / "SLEEP").exists():
    time.sleep(30)
build = overlay / "build.yaml"
if build.exists():
    sys.stdout.buffer.write(build.read_bytes())
'''

FAKE_KUBECTL = '''
import json
import os
import sys

args = sys.argv[1:]
stdin = sys.stdin.read() if "-f" in args else ""
with open(os.environ["FAKE_KUBECTL_LOG"], "a") as log:
    log.write(json.dumps({"args": args, "stdin": stdin}) + "\\n")

if "version" in args:
    version = os.environ.get("FAKE_KUBECTL_VERSION", "v1.28.3")
    print(json.dumps({"clientVersion": {"gitVersion": version}}))
    sys.exit(0)
if os.environ.get("FAKE_KUBECTL_BAD_OUTPUT"):
    sys.stdout.flush()
    sys.stdout.buffer.write(b"deployment.apps/\\xff configured\\n")
    sys.exit(0)
if os.environ.get("FAKE_KUBECTL_FAIL"):
    sys.stderr.write("error: connection refused\\n")
    sys.exit(1)
print("deployment.apps/payments-api configured")
'''


@pytest.fixture
def fake_kustomize(tmp_path):
    """Command that behaves like ``kustomize`` for overlays under tmp_path.

    ``build DIR`` prints ``DIR/build.yaml`` if present, fails when DIR has no
    kustomization.yaml, and hangs when ``DIR/SLEEP`` exists.
    """
    script = tmp_path / "fake_kustomize.py"
    script.write_text(FAKE_KUSTOMIZE, encoding="utf-8")
    return (sys.executable, str(script))


@pytest.fixture
def fake_kubectl(tmp_path, monkeypatch):
    """Command that records kubectl invocations to a JSON-lines log.

    Returns ``(command, log_path)``. Set FAKE_KUBECTL_FAIL to make apply and
    delete fail, FAKE_KUBECTL_BAD_OUTPUT to make them print invalid UTF-8,
    FAKE_KUBECTL_VERSION to change the reported version.
    """
    script = tmp_path / "fake_kubectl.py"
    script.write_text(FAKE_KUBECTL, encoding="utf-8")
    log = tmp_path / "kubectl.log"
    log.write_text("", encoding="utf-8")
    monkeypatch.setenv("FAKE_KUBECTL_LOG", str(log))
    monkeypatch.delenv("FAKE_KUBECTL_FAIL", raising=False)
    monkeypatch.delenv("FAKE_KUBECTL_VERSION", raising=False)
    monkeypatch.delenv("FAKE_KUBECTL_BAD_OUTPUT", raising=False)
    return (sys.executable, str(script)), log


@pytest.fixture
def make_overlay():
    """Factory creating an overlay directory whose fake kustomize build prints ``build_output``."""

    def _make(root: Path, build_output: str = "", descriptor: str = "resources: [deployment.yaml]\n") -> Path:
        root.mkdir(parents=True, exist_ok=True)
        (root / "kustomization.yaml").write_text(descriptor, encoding="utf-8")
        (root / "build.yaml").write_text(build_output, encoding="utf-8")
        return root

    return _make
