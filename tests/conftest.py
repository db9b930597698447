"""
Pytest configuration and shared fixtures for Document Classifier tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def input_dir(temp_dir: Path) -> Path:
    """Create a temporary input directory."""
    scans = temp_dir / "scans"
    scans.mkdir()
    return scans


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    """Create a temporary output directory."""
    output = temp_dir / "archive"
    output.mkdir()
    return output


@pytest.fixture
def bills_layout() -> list:
    """Layout with one parent and one child directory."""
    return [
        {
            "dir": "bills",
            "keywords": ["bill"],
            "sub": [{"dir": "electric", "keywords": ["kwh"]}],
        }
    ]


@pytest.fixture
def household_layout() -> list:
    """A deeper layout with a keyword-less root and several branches."""
    return [
        {
            "dir": "finance",
            "sub": [
                {
                    "dir": "invoices",
                    "keywords": ["invoice"],
                    "sub": [
                        {"dir": "2024", "keywords": ["2024"]},
                        {"dir": "2023", "keywords": ["2023"]},
                    ],
                },
                {
                    "dir": "taxes",
                    "keywords": ["tax"],
                    "sub": [{"dir": "federal", "keywords": ["federal"]}],
                },
            ],
        },
        {"dir": "medical", "keywords": ["patient"]},
    ]


@pytest.fixture
def layout_yaml() -> str:
    """Layout file contents as written by a user."""
    return """\
- dir: bills
  keywords: [bill]
  sub:
    - dir: electric
      keywords:
        - kwh
    - dir: phone
      keywords: [mobile]
- dir: invoices
  keywords: [invoice, 2024]
"""


@pytest.fixture
def config_file(temp_dir: Path, layout_yaml: str) -> Path:
    """Write the sample layout to a config.yml."""
    path = temp_dir / "config.yml"
    path.write_text(layout_yaml)
    return path


@pytest.fixture
def sample_text_bill() -> str:
    """Sample first page of an electricity bill."""
    return """
    Stadtwerke Musterstadt
    Your monthly bill

    Billing period: 01.11.2024 - 30.11.2024
    Consumption: 240 kWh
    Meter reading: 40 kwh used since last reading

    Amount due: €84.20
    """


@pytest.fixture(autouse=True)
def reset_env_vars():
    """Reset environment variables before each test."""
    original_env = os.environ.copy()
    for var in ("DDC_CONFIG", "DDC_INPUT_DIR", "DDC_OUTPUT_DIR", "LOG_FILE"):
        os.environ.pop(var, None)
    yield
    os.environ.clear()
    os.environ.update(original_env)
