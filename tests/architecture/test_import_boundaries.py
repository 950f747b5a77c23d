"""
Import-boundary enforcement for the dealflow layers.

1. Engine purity      -- dealflow_engines/** may not import the ORM, kernel
                         db/models, services, config, or modules.  The pure
                         decimal helpers in dealflow_kernel.db.types are the
                         one kernel-db module engines may use.
2. Engine no-impure   -- dealflow_engines/** may not read the wall clock or
                         the environment.
3. Kernel isolation   -- dealflow_kernel/** may not import any layer above it.
4. Config centralisation -- only dealflow_config/** may import the loader and
                         schema sub-modules.
5. Cascade direction  -- modules see the cascade only through the kernel's
                         listener protocol, never the orchestrator or container.

All scanning is done via AST -- these tests are read-only.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted((ROOT / package).rglob("*.py"))


def _parse(filepath: Path) -> ast.AST | None:
    try:
        return ast.parse(filepath.read_text(), filename=str(filepath))
    except (SyntaxError, UnicodeDecodeError):
        return None


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = _parse(filepath)
    if tree is None:
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = _parse(filepath)
    if tree is None:
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...], allowed: tuple[str, ...] = ()):
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, allowed):
                continue
            if _matches_any(module, forbidden):
                found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestEnginePurity:

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "sqlite3",
        "dealflow_kernel.models",
        "dealflow_kernel.db",
        "dealflow_kernel.services",
        "dealflow_services",
        "dealflow_config",
        "dealflow_modules",
    )
    ALLOWED = ("dealflow_kernel.db.types",)

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _violations("dealflow_engines", self.FORBIDDEN_PREFIXES, self.ALLOWED)
        assert not violations, (
            "Engine purity violation -- dealflow_engines/** must not import "
            "the ORM, kernel db/models, services, config, or modules:\n"
            + "\n".join(violations)
        )

    def test_engines_package_is_scanned(self):
        assert len(_python_files("dealflow_engines")) > 5


class TestEngineNoImpureFunctions:
    """time.monotonic is allowed; it is only used for duration logging."""

    FORBIDDEN_CALLS = frozenset({
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
    })

    def test_no_wall_clock_or_environment(self):
        violations = [
            f"  {filepath.relative_to(ROOT)}:{lineno} uses {call}"
            for filepath in _python_files("dealflow_engines")
            for lineno, call in _extract_attribute_calls(filepath)
            if call in self.FORBIDDEN_CALLS
        ]
        assert not violations, "Impure engine calls:\n" + "\n".join(violations)


class TestKernelIsolation:

    FORBIDDEN_PREFIXES = (
        "dealflow_engines",
        "dealflow_config",
        "dealflow_modules",
        "dealflow_services",
    )

    def test_kernel_imports_nothing_above_it(self):
        violations = _violations("dealflow_kernel", self.FORBIDDEN_PREFIXES)
        assert not violations, "Kernel imports upper layers:\n" + "\n".join(violations)


class TestConfigCentralisation:

    INTERNAL = ("dealflow_config.loader", "dealflow_config.schema")

    def test_only_config_package_imports_internals(self):
        violations: list[str] = []
        for package in ("dealflow_kernel", "dealflow_engines", "dealflow_modules", "dealflow_services"):
            violations.extend(_violations(package, self.INTERNAL))
        assert not violations, (
            "Use get_active_config() or dealflow_config.bridges:\n" + "\n".join(violations)
        )


class TestCascadeDirection:

    FORBIDDEN_PREFIXES = (
        "dealflow_services.cascade_orchestrator",
        "dealflow_services.container",
    )

    def test_modules_do_not_import_orchestration(self):
        violations = _violations("dealflow_modules", self.FORBIDDEN_PREFIXES)
        assert not violations, "\n".join(violations)
