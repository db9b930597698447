#!/usr/bin/env python3
"""
Document Classifier - Sort documents into a folder layout by keyword rules

This script scans an input folder and:
1. Extracts the text of each document's first page
2. Matches it against the keyword rules compiled from config.yml
3. Reports every matching destination (and optionally moves the file)

Usage:
    python document_classifier.py --input ./scans --output ./archive

Move unambiguously classified files:
    python document_classifier.py --input ./scans --output ./archive --move

Show the layout file:
    python document_classifier.py --print-config
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path

from PIL import Image

from classifier_rules import ClassifierRule, ConfigError
from settings import get_env_settings, load_rules, read_config_text, resolve_config_path
from text_matcher import matches


# ==============================================================================
# LOGGING CONFIGURATION
# ==============================================================================

def setup_logging() -> logging.Logger:
    """Configure logging based on environment variables."""
    env = get_env_settings()

    logger = logging.getLogger("ddc")
    logger.setLevel(getattr(logging, env["log_level"], logging.INFO))

    # Prevent duplicate handlers on reimport
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(console_handler)

    if env["log_file"]:
        file_handler = logging.FileHandler(env["log_file"])
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
        ))
        logger.addHandler(file_handler)

    return logger


logger = setup_logging()

# Scanned pages can be large, allow up to 200MP
Image.MAX_IMAGE_PIXELS = 200_000_000

IMAGE_FORMATS = {'.png', '.jpg', '.jpeg', '.tiff', '.bmp'}
SUPPORTED_FORMATS = {'.pdf', '.txt'} | IMAGE_FORMATS


# ==============================================================================
# DOCUMENT DISCOVERY
# ==============================================================================

def is_supported(file_path: Path) -> bool:
    return file_path.is_file() and file_path.suffix.lower() in SUPPORTED_FORMATS


def find_documents(input_dir: str | Path) -> list[Path]:
    """Recursively find all supported documents, sorted by path."""
    return sorted(p for p in Path(input_dir).rglob('*') if is_supported(p))


# ==============================================================================
# TEXT EXTRACTION
# ==============================================================================

def extract_first_page_text(file_path: str | Path) -> dict:
    """Extract the text of a document's first page.

    PDFs are read with pdfplumber, images are OCRed with pytesseract
    and plain text files are read as-is.
    """
    suffix = Path(file_path).suffix.lower()

    try:
        if suffix == '.pdf':
            import pdfplumber
            with pdfplumber.open(file_path) as pdf:
                if not pdf.pages:
                    return {"success": False, "text": "", "error": "PDF has no pages"}
                text = pdf.pages[0].extract_text() or ""
            return {"success": True, "text": text}

        elif suffix == '.txt':
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                return {"success": True, "text": f.read()}

        elif suffix in IMAGE_FORMATS:
            import pytesseract
            # Multi-page TIFFs open on their first frame
            with Image.open(file_path) as img:
                text = pytesseract.image_to_string(img)
            return {"success": True, "text": text}

        else:
            return {"success": False, "text": "", "error": f"Unsupported format: {suffix}"}

    except Exception as e:
        return {"success": False, "text": "", "error": str(e)}


# ==============================================================================
# CLASSIFICATION
# ==============================================================================

def unique_destination(dest_dir: Path, name: str) -> Path:
    """Return a path in dest_dir that does not exist yet (name_1.pdf, ...)."""
    dest_path = dest_dir / name
    counter = 1
    while dest_path.exists():
        stem = Path(name).stem
        suffix = Path(name).suffix
        dest_path = dest_dir / f"{stem}_{counter}{suffix}"
        counter += 1
    return dest_path


def move_to_destination(file_path: str | Path, output_dir: str | Path, rule: ClassifierRule) -> Path:
    """Move a file into the rule's destination folder under output_dir."""
    dest_dir = Path(output_dir) / rule.destination
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest_path = unique_destination(dest_dir, Path(file_path).name)
    shutil.move(str(file_path), dest_path)
    return dest_path


def classify_file(file_path: str | Path, rules: list[ClassifierRule],
                  output_dir: str | Path | None = None, move: bool = False) -> dict:
    """Classify a single file and optionally move it.

    The file is only moved when exactly one rule matches.
    """
    result = extract_first_page_text(file_path)
    if not result["success"]:
        logger.warning(f"Could not extract text from {file_path}: {result.get('error', 'unknown')}")
        return {"success": False, "file": str(file_path), "error": result.get("error", "unknown"), "matches": []}

    found = matches(rules, result["text"])
    outcome = {"success": True, "file": str(file_path), "matches": found}

    if move and len(found) == 1:
        if output_dir is None:
            raise ValueError("output_dir is required to move files")
        outcome["destination"] = str(move_to_destination(file_path, output_dir, found[0]))

    return outcome


def print_result(result: dict, move: bool = False):
    """Print the classification of one document."""
    if not result["matches"]:
        return

    print(f" src: {result['file']}")
    for rule in result["matches"]:
        print(f"dest: {rule.destination} using keywords: {list(rule.keywords)}")
    if len(result["matches"]) > 1:
        note = ", not moved" if move else ""
        print(f"  ⚠️  Ambiguous: {len(result['matches'])} candidate destinations{note}")
    if result.get("destination"):
        print(f"  ✅ Moved to: {result['destination']}")
    print()


def process_directory(input_dir: str | Path, rules: list[ClassifierRule],
                      output_dir: str | Path | None = None, move: bool = False) -> list[dict]:
    """Classify every supported document in input_dir."""
    print(f"\n📥 Classifying documents in: {input_dir}")
    if move:
        print(f"📤 Moving into: {output_dir}")
    print(f"📋 Using {len(rules)} rules\n")

    results = []
    for file_path in find_documents(input_dir):
        result = classify_file(file_path, rules, output_dir, move)
        print_result(result, move)
        results.append(result)

    failed = [r for r in results if not r["success"]]
    unclassified = [r for r in results if r["success"] and not r["matches"]]
    ambiguous = [r for r in results if len(r["matches"]) > 1]
    classified = [r for r in results if len(r["matches"]) == 1]

    print(f"{'='*50}")
    print(f"✅ Classified {len(classified)}/{len(results)} files")
    if ambiguous:
        print(f"⚠️  {len(ambiguous)} ambiguous files")
    if unclassified:
        print(f"❓ {len(unclassified)} unclassified files:")
        for r in unclassified:
            print(f"   {r['file']}")
    if failed:
        print(f"❌ {len(failed)} files could not be read")

    return results


# ==============================================================================
# CLI
# ==============================================================================

def main(argv: list[str] | None = None) -> int:
    env = get_env_settings()

    parser = argparse.ArgumentParser(
        description="Sort documents into a folder layout using keyword rules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Layout file (config.yml)
========================
  - dir: bills
    keywords: [bill]
    sub:
      - dir: electric
        keywords: [kwh]

A document goes to bills/electric only if its first page contains both
"bill" and "kwh" as whole words. Subdirectories inherit their parents'
keywords. A document matching several directories is reported as ambiguous.
        """
    )
    parser.add_argument("--input", "-i", default=env["input_dir"] or None,
                        help="Input directory containing files to be classified")
    parser.add_argument("--output", "-o", default=env["output_dir"] or None,
                        help="Output directory (root of the layout)")
    parser.add_argument("--config", help="Layout file (default: DDC_CONFIG or the user config dir)")
    parser.add_argument("--print-config", action="store_true", help="Display configuration file")
    parser.add_argument("--move", action="store_true",
                        help="Move files that match exactly one directory")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log every compiled rule and other debug output")

    args = parser.parse_args(argv)
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    config_path = resolve_config_path(args.config)

    try:
        if args.print_config:
            print(read_config_text(config_path))
            return 0

        if not args.input:
            parser.error("--input is required (or set DDC_INPUT_DIR in .env)")
        if not Path(args.input).is_dir():
            parser.error(f"Input directory does not exist: {args.input}")
        if args.move and not args.output:
            parser.error("--output is required with --move (or set DDC_OUTPUT_DIR in .env)")

        rules = load_rules(config_path)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    process_directory(args.input, rules, args.output, args.move)
    return 0


if __name__ == "__main__":
    sys.exit(main())
