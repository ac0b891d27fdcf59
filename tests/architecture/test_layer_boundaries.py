"""
Import-boundary enforcement for the contract packages.

1. Kernel boundary   -- contract_kernel/** may not import contract_services
                        or contract_config.
2. Domain purity     -- contract_kernel/domain/** may not import SQLAlchemy
                        or the kernel's db, models, services or selectors.
3. Engine purity     -- contract_engines/** may import the kernel domain and
                        the stdlib only.
4. Engine no-impure  -- contract_engines/** may not read the wall clock or
                        the environment.
5. Config bridge     -- in contract_config/ only bridges.py imports the kernel.

All scanning is done via AST; these tests are read-only.
"""

import ast
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    """Return (line_number, module) for every import in *path*."""
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...], skip: tuple[str, ...] = ()) -> list[str]:
    found = []
    for path in _python_files(package):
        if path.name in skip:
            continue
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"{path.relative_to(REPO_ROOT)}:{lineno} imports {module}")
    return found


class TestKernelBoundary:

    def test_packages_present(self):
        for package in ("contract_kernel", "contract_engines", "contract_config", "contract_services"):
            assert _python_files(package), f"{package} not found under {REPO_ROOT}"

    def test_kernel_does_not_import_outer_layers(self):
        assert _violations("contract_kernel", ("contract_services", "contract_config")) == []

    def test_domain_is_pure(self):
        forbidden = (
            "sqlalchemy",
            "contract_kernel.db",
            "contract_kernel.models",
            "contract_kernel.services",
            "contract_kernel.selectors",
            "contract_engines",
        )
        assert _violations("contract_kernel/domain", forbidden) == []


class TestEnginePurity:

    def test_engines_import_only_domain(self):
        forbidden = (
            "sqlalchemy",
            "yaml",
            "contract_kernel.db",
            "contract_kernel.models",
            "contract_kernel.services",
            "contract_kernel.selectors",
            "contract_config",
            "contract_services",
        )
        assert _violations("contract_engines", forbidden) == []

    @pytest.mark.parametrize(
        "call", ["datetime.now", "datetime.utcnow", "date.today", "os.environ", "os.getenv"],
    )
    def test_engines_do_not_read_clock_or_environment(self, call):
        offenders = []
        for path in _python_files("contract_engines"):
            tree = ast.parse(path.read_text(), filename=str(path))
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Attribute)
                    and isinstance(node.value, ast.Name)
                    and f"{node.value.id}.{node.attr}" == call
                ):
                    offenders.append(f"{path.name}:{node.lineno}")
        assert offenders == []


class TestConfigBoundary:

    def test_only_bridges_import_kernel(self):
        assert _violations("contract_config", ("contract_kernel",), skip=("bridges.py",)) == []

    def test_config_does_not_import_services(self):
        assert _violations("contract_config", ("contract_services", "contract_engines")) == []
