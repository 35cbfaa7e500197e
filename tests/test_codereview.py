#!/usr/bin/env python3
"""
CODEREVIEW — Automated Static Validation Suite
===============================================

Offline checks run on every change: no subgraph or RPC traffic.

Run:
  python tests/test_codereview.py               # All checks + report
  python -m pytest tests/test_codereview.py -v  # Via pytest

Checks:
  T01  CLI info command runs
  T06  Syntax validation (ast.parse)
  T07  Import validation
  T08  Version consistency (pyproject.toml ↔ central_config)
  T09  Sensitive data scan
  T11  Tick → price reference values
  T21  Requirements validation
  T22  Modularity (univ3_cli/ never imports root modules at module scope)
  T36  RPC URL masking in logs (CWE-200)
  T38  Tick bounds (CWE-682)
  T41  No bare ``except:`` (CWE-396)
"""

import ast
import importlib
import re
import subprocess
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List

# ── Setup project root ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# All Python source files to validate
PYTHON_FILES = [
    "run.py",
    "pool_scout.py",
    "position_reader.py",
    "price_math.py",
    "univ3_cli/__init__.py",
    "univ3_cli/abi_codec.py",
    "univ3_cli/central_config.py",
    "univ3_cli/commands.py",
    "univ3_cli/errors.py",
    "univ3_cli/graphql_client.py",
    "univ3_cli/models.py",
    "univ3_cli/poller.py",
    "univ3_cli/rpc_helpers.py",
    "univ3_cli/token_aliases.py",
    "univ3_cli/token_metadata.py",
]

PROJECT_MODULES = [
    "univ3_cli.errors",
    "univ3_cli.central_config",
    "univ3_cli.abi_codec",
    "univ3_cli.rpc_helpers",
    "univ3_cli.graphql_client",
    "univ3_cli.models",
    "univ3_cli.token_aliases",
    "univ3_cli.token_metadata",
    "univ3_cli.poller",
    "univ3_cli.commands",
    "price_math",
    "pool_scout",
    "position_reader",
]

# Root-level modules the package must not import at module scope
ROOT_MODULES = ["run", "pool_scout", "position_reader", "price_math"]

# Distribution name → import name, where they differ
IMPORT_NAMES = {
    "eth-utils": "eth_utils",
    "eth-hash": "eth_hash",
}

# Sensitive patterns to scan for
SENSITIVE_PATTERNS = [
    r"(?i)private.?key\s*=\s*['\"]0x",
    r"(?i)secret\s*=\s*['\"]",
    r"(?i)password\s*=\s*['\"](?!.*example)",
    r"(?i)api.?key\s*=\s*['\"][a-zA-Z0-9]{20,}",
    r"(?i)bearer\s+[a-zA-Z0-9._-]{20,}",
    r"AKIA[0-9A-Z]{16}",  # AWS access key
]


# ═══════════════════════════════════════════════════════════════════════
# TEST RESULTS COLLECTOR
# ═══════════════════════════════════════════════════════════════════════


class CodeReviewResults:
    """Collects and formats check results for the codereview report."""

    def __init__(self):
        self.results: List[Dict] = []
        self.start_time = time.time()

    def add(
        self,
        test_id: str,
        name: str,
        passed: bool,
        detail: str = "",
        severity: str = "PASS",
    ):
        self.results.append(
            {
                "id": test_id,
                "name": name,
                "passed": passed,
                "detail": detail,
                "severity": severity if not passed else "PASS",
            }
        )

    def summary(self) -> str:
        elapsed = time.time() - self.start_time
        total = len(self.results)
        passed = sum(1 for r in self.results if r["passed"])
        failed = total - passed

        lines = [
            "",
            "═" * 70,
            "  CODEREVIEW — Static Validation Report",
            f"  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} | {elapsed:.1f}s",
            "═" * 70,
            "",
        ]

        severity_icons = {
            "PASS": "✅",
            "LOW": "🟢",
            "MEDIUM": "🟡",
            "HIGH": "🟠",
            "CRITICAL": "🔴",
        }

        for r in self.results:
            icon = severity_icons.get(r["severity"], "❓")
            status = "PASS" if r["passed"] else f"FAIL [{r['severity']}]"
            lines.append(f"  {icon} {r['id']:5s} {r['name']:<45s} {status}")
            if r["detail"] and not r["passed"]:
                for d in r["detail"].split("\n"):
                    lines.append(f"         {d}")

        lines.append("")
        lines.append("─" * 70)
        pct = (passed / total * 100) if total > 0 else 0
        lines.append(f"  Results: {passed}/{total} passed ({pct:.0f}%)")
        if failed == 0:
            lines.append("  🎉 ALL CHECKS PASSED")
        else:
            lines.append(f"  ⚠️  {failed} check(s) failed — review above")
        lines.append("─" * 70)

        return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════
# T01 — CLI info command
# ═══════════════════════════════════════════════════════════════════════


def _t01_cli_info(results: CodeReviewResults):
    """T01: python run.py info executes without error."""
    try:
        proc = subprocess.run(
            [sys.executable, str(PROJECT_ROOT / "run.py"), "--config", "missing-config.toml", "info"],
            capture_output=True,
            text=True,
            timeout=15,
            cwd=str(PROJECT_ROOT),
        )
        ok = proc.returncode == 0 and "Univ3 CLI" in proc.stdout
        detail = "" if ok else f"exit={proc.returncode}, stderr={proc.stderr[:200]}"
        results.add("T01", "CLI info command", ok, detail, "HIGH")
    except Exception as e:
        results.add("T01", "CLI info command", False, str(e), "HIGH")


# ═══════════════════════════════════════════════════════════════════════
# T06 — Syntax validation
# ═══════════════════════════════════════════════════════════════════════


def _t06_syntax(results: CodeReviewResults):
    """T06: All Python files parse without syntax errors."""
    errors = []
    for f in PYTHON_FILES:
        fpath = PROJECT_ROOT / f
        if not fpath.exists():
            errors.append(f"{f}: FILE NOT FOUND")
            continue
        try:
            ast.parse(fpath.read_text())
        except SyntaxError as e:
            errors.append(f"{f}: line {e.lineno}: {e.msg}")

    ok = len(errors) == 0
    detail = "\n".join(errors) if errors else f"{len(PYTHON_FILES)} files OK"
    results.add("T06", "Syntax validation (ast.parse)", ok, detail, "CRITICAL")


# ═══════════════════════════════════════════════════════════════════════
# T07 — Import validation
# ═══════════════════════════════════════════════════════════════════════


def _t07_imports(results: CodeReviewResults):
    """T07: All project modules import without error."""
    errors = []
    for mod in PROJECT_MODULES + ["run"]:
        try:
            importlib.import_module(mod)
        except Exception as e:
            errors.append(f"{mod}: {e}")

    ok = len(errors) == 0
    detail = "\n".join(errors) if errors else f"{len(PROJECT_MODULES) + 1} modules OK"
    results.add("T07", "Import validation", ok, detail, "CRITICAL")


# ═══════════════════════════════════════════════════════════════════════
# T08 — Version consistency
# ═══════════════════════════════════════════════════════════════════════


def _t08_version(results: CodeReviewResults):
    """T08: Version in pyproject.toml matches central_config.py and __init__.py."""
    try:
        import univ3_cli
        from univ3_cli.central_config import PROJECT_VERSION

        toml_text = (PROJECT_ROOT / "pyproject.toml").read_text()
        match = re.search(r'version\s*=\s*"([^"]+)"', toml_text)
        toml_version = match.group(1) if match else "NOT_FOUND"

        ok = PROJECT_VERSION == toml_version == univ3_cli.__version__
        detail = (
            f"central_config={PROJECT_VERSION}, __init__={univ3_cli.__version__}, "
            f"pyproject.toml={toml_version}"
        )
        results.add("T08", "Version consistency", ok, detail, "HIGH")
    except Exception as e:
        results.add("T08", "Version consistency", False, str(e), "HIGH")


# ═══════════════════════════════════════════════════════════════════════
# T09 — Sensitive data scan
# ═══════════════════════════════════════════════════════════════════════


def _t09_secrets(results: CodeReviewResults):
    """T09: No hardcoded secrets/keys in source code or sample config."""
    findings = []
    for f in PYTHON_FILES + ["config.example.toml"]:
        fpath = PROJECT_ROOT / f
        if not fpath.exists():
            continue
        for i, line in enumerate(fpath.read_text().split("\n"), 1):
            for pattern in SENSITIVE_PATTERNS:
                if re.search(pattern, line):
                    findings.append(f"{f}:{i} — matches: {pattern}")

    ok = len(findings) == 0
    detail = "\n".join(findings[:5]) if findings else "No secrets found"
    results.add("T09", "Sensitive data scan", ok, detail, "CRITICAL")


# ═══════════════════════════════════════════════════════════════════════
# T11 — Tick → price reference values (Whitepaper §6.1)
# ═══════════════════════════════════════════════════════════════════════


def _t11_tick_price_reference(results: CodeReviewResults):
    """T11: tick_to_price matches 1.0001^i × 10^(d0 − d1) at several scales."""
    from price_math import UniswapV3Math

    cases = [
        # (tick, d0, d1)
        (0, 18, 18),
        (6932, 0, 0),
        (-6932, 0, 0),
        (-197310, 18, 6),
        (197310, 6, 18),
        (-276324, 18, 6),
        (100000, 8, 18),
    ]
    errors = []
    for tick, d0, d1 in cases:
        expected = 1.0001 ** tick * 10 ** (d0 - d1)
        got = UniswapV3Math.tick_to_price(tick, d0, d1)
        if abs(got - expected) / expected >= 1e-9:
            errors.append(f"tick={tick} d0={d0} d1={d1}: got {got}, expected {expected}")

    lo, hi, mid = UniswapV3Math.price_range(0, 0, 18, 18)
    if (f"{lo:.2f}", f"{hi:.2f}", f"{mid:.2f}") != ("1.00", "1.00", "1.00"):
        errors.append(f"price_range(0, 0) = {lo}, {hi}, {mid}")

    ok = len(errors) == 0
    detail = f"{len(cases)} ticks tested" if ok else "\n".join(errors)
    results.add("T11", f"Tick → price reference ({len(cases)} scales)", ok, detail, "CRITICAL")


# ═══════════════════════════════════════════════════════════════════════
# T21 — Requirements validation
# ═══════════════════════════════════════════════════════════════════════


def _t21_requirements(results: CodeReviewResults):
    """T21: Declared dependencies are importable and Python satisfies requires-python."""
    findings = []

    req_path = PROJECT_ROOT / "requirements.txt"
    if not req_path.exists():
        findings.append("requirements.txt not found")
    else:
        for line in req_path.read_text().strip().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            pkg = re.split(r"[\[>=<~!]", line)[0].strip()
            try:
                importlib.import_module(IMPORT_NAMES.get(pkg, pkg.replace("-", "_")))
            except ImportError:
                findings.append(f"Cannot import: {pkg}")

    toml_path = PROJECT_ROOT / "pyproject.toml"
    if toml_path.exists():
        toml_text = toml_path.read_text()
        py_match = re.search(r'requires-python\s*=\s*">=\s*(\d+)\.(\d+)"', toml_text)
        if py_match:
            required = (int(py_match.group(1)), int(py_match.group(2)))
            if sys.version_info[:2] < required:
                findings.append(f"Python {sys.version_info[:2]} < required {required}")
        for line in req_path.read_text().splitlines() if req_path.exists() else []:
            name = re.split(r"[\[>=<~!]", line.strip())[0]
            if name and f'"{name}' not in toml_text:
                findings.append(f"{name}: in requirements.txt but not in pyproject.toml")
    else:
        findings.append("pyproject.toml not found")

    ok = len(findings) == 0
    detail = "\n".join(findings) if findings else "All dependencies OK"
    results.add("T21", "Requirements validation", ok, detail, "HIGH")


# ═══════════════════════════════════════════════════════════════════════
# T22 — Modularity check (no circular imports, proper separation)
# ═══════════════════════════════════════════════════════════════════════


def _t22_modularity(results: CodeReviewResults):
    """T22: Modules follow clean architecture — docstrings, package never imports root modules."""
    findings = []

    # 1. Every module imports cleanly and carries a docstring
    for mod_name in PROJECT_MODULES:
        try:
            mod = importlib.import_module(mod_name)
            if not getattr(mod, "__doc__", None):
                findings.append(f"{mod_name}: missing module docstring")
        except ImportError as e:
            findings.append(f"{mod_name}: import error — {e}")

    # 2. univ3_cli/ doesn't import root-level modules at module scope
    # (root imports univ3_cli, not the other way)
    for fpath in sorted((PROJECT_ROOT / "univ3_cli").glob("*.py")):
        tree = ast.parse(fpath.read_text())
        for node in tree.body:
            names = []
            if isinstance(node, ast.Import):
                names = [a.name.split(".")[0] for a in node.names]
            elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
                names = [node.module.split(".")[0]]
            for name in names:
                if name in ROOT_MODULES:
                    findings.append(
                        f"univ3_cli/{fpath.name}: improper import '{name}' (breaks modularity)"
                    )

    # 3. Verify __init__.py exposes version
    init_path = PROJECT_ROOT / "univ3_cli" / "__init__.py"
    if init_path.exists():
        if "__version__" not in init_path.read_text():
            findings.append("univ3_cli/__init__.py: missing version export")
    else:
        findings.append("univ3_cli/__init__.py: not found")

    ok = len(findings) == 0
    detail = (
        "\n".join(findings)
        if findings
        else f"{len(PROJECT_MODULES)} modules OK, proper isolation"
    )
    results.add("T22", "Modularity check", ok, detail, "MEDIUM")


# ═══════════════════════════════════════════════════════════════════════
# T36 — RPC URL masking in logs (CWE-200)
# ═══════════════════════════════════════════════════════════════════════


def _t36_rpc_url_masking(results: CodeReviewResults):
    """T36: Hosted RPC URLs with embedded API keys never reach the log verbatim."""
    try:
        from univ3_cli.rpc_helpers import _mask_url

        findings = []
        for url, secret in [
            ("https://arb-mainnet.g.alchemy.com/v2/abc123def456ghi789", "abc123def456ghi789"),
            ("https://mainnet.infura.io/v3/0123456789abcdef", "0123456789abcdef"),
            ("https://rpc.example.org/?key=s3cr3t", "s3cr3t"),
        ]:
            masked = _mask_url(url)
            if secret in masked:
                findings.append(f"_mask_url({url!r}) leaked the key: {masked!r}")

        ok = len(findings) == 0
        detail = "\n".join(findings) if findings else "RPC URL masking working"
        results.add("T36", "RPC URL masking (CWE-200)", ok, detail, "MEDIUM")
    except Exception as e:
        results.add("T36", "RPC URL masking (CWE-200)", False, str(e)[:200], "MEDIUM")


# ═══════════════════════════════════════════════════════════════════════
# T38 — Tick bounds validation (CWE-682)
# ═══════════════════════════════════════════════════════════════════════


def _t38_tick_bounds(results: CodeReviewResults):
    """T38: Math functions handle extreme tick values without overflow."""
    from price_math import UniswapV3Math

    findings = []
    for tick in [-887272, 887272, -999999, 999999, -(2 ** 23), 2 ** 23 - 1]:
        try:
            price = UniswapV3Math.tick_to_price(tick)
            if price <= 0 or price == float("inf"):
                findings.append(f"tick={tick}: price={price} invalid")
        except OverflowError as e:
            findings.append(f"tick={tick}: overflow — {e}")

    try:
        rng = UniswapV3Math.price_range(-(2 ** 23), 2 ** 23 - 1, 0, 0)
        if rng.mid == float("inf"):
            findings.append("price_range mid overflowed")
    except OverflowError as e:
        findings.append(f"price_range overflow — {e}")

    ok = len(findings) == 0
    detail = "\n".join(findings) if findings else "Tick bounds validated — no overflow"
    results.add("T38", "Tick bounds (CWE-682)", ok, detail, "MEDIUM")


# ═══════════════════════════════════════════════════════════════════════
# T41 — No bare except (CWE-396)
# ═══════════════════════════════════════════════════════════════════════


def _t41_no_bare_except(results: CodeReviewResults):
    """T41: No bare ``except:`` clauses in project sources."""
    findings = []
    for f in PYTHON_FILES:
        fpath = PROJECT_ROOT / f
        if not fpath.exists():
            continue
        for node in ast.walk(ast.parse(fpath.read_text())):
            if isinstance(node, ast.ExceptHandler) and node.type is None:
                findings.append(f"{f}:{node.lineno}: bare except")

    ok = len(findings) == 0
    detail = "\n".join(findings) if findings else "No bare except clauses"
    results.add("T41", "No bare except (CWE-396)", ok, detail, "MEDIUM")


# ═══════════════════════════════════════════════════════════════════════
# RUNNER
# ═══════════════════════════════════════════════════════════════════════


def run_all():
    """Execute all codereview checks and print summary."""
    results = CodeReviewResults()

    print("\n🔍 CODEREVIEW — Starting static validation...")
    print(f"   Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"   Root: {PROJECT_ROOT}")
    print()

    for label, check in [
        ("T01: CLI info", _t01_cli_info),
        ("T06: Syntax validation", _t06_syntax),
        ("T07: Import validation", _t07_imports),
        ("T08: Version consistency", _t08_version),
        ("T09: Sensitive data scan", _t09_secrets),
        ("T11: Tick → price reference", _t11_tick_price_reference),
        ("T21: Requirements", _t21_requirements),
        ("T22: Modularity", _t22_modularity),
        ("T36: RPC URL masking", _t36_rpc_url_masking),
        ("T38: Tick bounds", _t38_tick_bounds),
        ("T41: Bare except", _t41_no_bare_except),
    ]:
        print(f"  ⏳ {label}...")
        check(results)

    print(results.summary())

    critical_fails = sum(
        1 for r in results.results if not r["passed"] and r["severity"] == "CRITICAL"
    )
    return 1 if critical_fails > 0 else 0


# ── Pytest integration ──────────────────────────────────────────────────
# Each check can also be run individually via pytest

import pytest


@pytest.fixture(scope="module")
def cr():
    return CodeReviewResults()

def test_cr_t01_cli_info(cr): _t01_cli_info(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T01")
def test_cr_t06_syntax(cr): _t06_syntax(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T06")
def test_cr_t07_imports(cr): _t07_imports(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T07")
def test_cr_t08_version(cr): _t08_version(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T08")
def test_cr_t09_secrets(cr): _t09_secrets(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T09")
def test_cr_t11_tick_reference(cr): _t11_tick_price_reference(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T11")
def test_cr_t21_requirements(cr): _t21_requirements(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T21")
def test_cr_t22_modularity(cr): _t22_modularity(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T22")
def test_cr_t36_rpc_masking(cr): _t36_rpc_url_masking(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T36")
def test_cr_t38_tick_bounds(cr): _t38_tick_bounds(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T38")
def test_cr_t41_bare_except(cr): _t41_no_bare_except(cr); assert all(r["passed"] for r in cr.results if r["id"] == "T41")


# ── CLI entry point ─────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(run_all())
