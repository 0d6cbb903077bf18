"""Pytest configuration for the Lox test suite."""

import signal
import sys
from pathlib import Path

# Add src directory to path for lox imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

PHASE_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent


def _timeout_handler(signum, frame):
    raise TimeoutError("phase timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Read the cases of one .tests file as (name, source, expected).

    A case opens with '=== name'. The Lox source runs to the first '---'
    line and the expected section to the next one; the expected text is
    stripped. Anything between cases is ignored.
    """
    cases: list[tuple[str, str, str]] = []
    name: str | None = None
    sections: list[list[str]] = []
    for line in path.read_text().split("\n"):
        if name is None:
            if line.startswith("=== "):
                name = line[4:].strip()
                sections = [[]]
            continue
        if line.startswith("---"):
            if len(sections) == 2:
                source, expected = ("\n".join(s) for s in sections)
                cases.append((name, source, expected.strip()))
                name = None
            else:
                sections.append([])
            continue
        sections[-1].append(line)
    if name is not None:
        source = "\n".join(sections[0])
        expected = "\n".join(sections[1]).strip() if len(sections) == 2 else ""
        cases.append((name, source, expected))
    return cases


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """All cases under test_dir as (file-stem/name, source, expected)."""
    return [
        (path.stem + "/" + name, source, expected)
        for path in sorted(test_dir.glob("*.tests"))
        for name, source, expected in parse_spec_file(path)
    ]
