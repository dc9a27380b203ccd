import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from .consts import PROJECT_ROOT, SEMGREP_OUTPUT_FILE

# Ensure the package is importable without installation
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from .fakes import FakeHost, FakeLoop  # noqa: E402


@pytest.fixture
def semgrep_output() -> str:
    return SEMGREP_OUTPUT_FILE.read_text(encoding="utf-8")


@pytest.fixture
def fake_host(tmp_path: Path) -> FakeHost:
    return FakeHost(cwd=tmp_path)


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def stub_semgrep(tmp_path: Path) -> Callable[..., Path]:
    """Create an executable standing in for semgrep.

    The stub records its arguments in ``<tmp>/argv.log``, prints the given
    output and exits with the given status.
    """
    if sys.platform == "win32":
        pytest.skip("stub executables are POSIX shell scripts")

    def factory(output: str, exit_code: int = 1, name: str = "semgrep") -> Path:
        output_file = tmp_path / f"{name}-output.json"
        output_file.write_text(output, encoding="utf-8")
        script = tmp_path / name
        script.write_text(
            "#!/bin/sh\n"
            f'printf "%s\\n" "$*" >> "{tmp_path / "argv.log"}"\n'
            f'cat "{output_file}"\n'
            f"exit {exit_code}\n",
            encoding="utf-8",
        )
        script.chmod(0o755)
        return script

    return factory
