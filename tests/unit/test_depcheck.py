from __future__ import annotations

import subprocess
import sys
from pathlib import Path


def test_depcheck_fails_on_forbidden_import(tmp_path: Path) -> None:
    domain_dir = tmp_path / "domain"
    domain_dir.mkdir(parents=True, exist_ok=True)

    violating_file = domain_dir / "model.py"
    violating_file.write_text("import sqlalchemy\n", encoding="utf-8")

    script_path = Path(__file__).resolve().parents[2] / "tools" / "depcheck.py"
    result = subprocess.run(
        [sys.executable, str(script_path), "--path", str(domain_dir)],
        capture_output=True,
        text=True,
        check=False,
    )

    combined_output = f"{result.stdout}\n{result.stderr}"
    assert result.returncode != 0
    assert "sqlalchemy" in combined_output
    assert str(violating_file) in combined_output


def test_depcheck_passes_on_domain_layer() -> None:
    script_path = Path(__file__).resolve().parents[2] / "tools" / "depcheck.py"
    result = subprocess.run(
        [sys.executable, str(script_path)],
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode == 0, result.stdout + result.stderr


def test_depcheck_flags_payment_sdk_in_domain(tmp_path: Path) -> None:
    domain_dir = tmp_path / "domain"
    domain_dir.mkdir()
    (domain_dir / "fees.py").write_text("from stripe import PaymentIntent\n", encoding="utf-8")

    script_path = Path(__file__).resolve().parents[2] / "tools" / "depcheck.py"
    result = subprocess.run(
        [sys.executable, str(script_path), "--path", str(domain_dir)],
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode != 0
    assert "stripe" in result.stdout + result.stderr


def test_depcheck_application_layer_may_not_touch_the_database(tmp_path: Path) -> None:
    sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "tools"))
    import depcheck

    module = tmp_path / "use_case.py"
    module.write_text(
        "from pydantic import BaseModel\nfrom sqlalchemy.orm import Session\n", encoding="utf-8"
    )

    violations = depcheck.find_violations([module], depcheck.APPLICATION_FORBIDDEN)

    assert [violation.module for violation in violations] == ["sqlalchemy.orm"]
