#!/usr/bin/env python3
"""
ddx CLI: compares two .docx revisions: markdown diff of the text plus
content-based reconciliation of the embedded images.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import sys
import os
import time
from pathlib import Path
from typing import List, Optional, NoReturn
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

# === EARLY DEPENDENCY VALIDATION ===
_MISSING_DEPS = []
try:
    import xxhash
except ImportError:
    _MISSING_DEPS.append("xxhash")

try:
    import PIL
except ImportError:
    _MISSING_DEPS.append("Pillow")

if _MISSING_DEPS:
    print("❌ Missing required dependencies:", file=sys.stderr)
    print(f"   pip install {' '.join(_MISSING_DEPS)}", file=sys.stderr)
    print("\nOr install the package with its dependencies:", file=sys.stderr)
    print("   pip install diff-docx", file=sys.stderr)
    sys.exit(1)

# === NORMAL IMPORTS (after validation) ===
from ddx import __version__
from ddx.core.models import CompareConfig, CompareEngine, DiffParams, ReconciliationResult
from ddx.core.capabilities import FormatCapabilityTable
from ddx.core.comparators import resolve_engine
from ddx.core.errors import MissingToolError
from ddx.commands import DiffCommand, DiffOutcome
from ddx.services.diff_service import DiffService
from ddx.aliases import ENGINE_ALIASES, ENGINE_CHOICES, ENGINE_HELP_TEXT, EPILOG_TEXT


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        sys.stdout.reconfigure(encoding='utf-8')
        sys.stderr.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="ddx",
            description="ddx: diff two .docx files as markdown and compare their images",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument("file1", type=str, help="Original .docx document")
        parser.add_argument("file2", type=str, help="Revised .docx document")

        parser.add_argument(
            "--output", "-o",
            default="diff",
            type=str,
            metavar='DIR',
            help="Output directory for diff.md and images. Default: diff"
        )
        parser.add_argument(
            "--engine",
            choices=ENGINE_CHOICES,
            default="auto",
            type=str,
            help=ENGINE_HELP_TEXT
        )
        parser.add_argument(
            "--convert-png",
            action=argparse.BooleanOptionalAction,
            default=True,
            help="Convert vector images (wmf/emf/svg) to PNG via ImageMagick before comparison. Default: on"
        )

        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress the diff and progress output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show matched and skipped images, diff image paths and progress"
        )
        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {__version__}"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if args.verbose and args.quiet:
            self.error_exit("--verbose and --quiet cannot be used together")

        for file in (args.file1, args.file2):
            if not file.lower().endswith(".docx"):
                self.error_exit(f"file {file} is not a .docx file")
            path = Path(file)
            if not path.exists():
                self.error_exit(f"file {file} does not exist")
            if not path.is_file():
                self.error_exit(f"Path is not a file: {file}")

        output = Path(args.output)
        if output.exists() and not output.is_dir():
            self.error_exit(f"Output path is not a directory: {args.output}")

    def create_params(self, args: argparse.Namespace) -> DiffParams:
        """Create DiffParams from CLI arguments."""
        try:
            return DiffParams(
                file1=args.file1,
                file2=args.file2,
                output_dir=args.output,
                engine=ENGINE_ALIASES.get(args.engine, CompareEngine.AUTO),
                convert_png=args.convert_png,
                verbose=args.verbose,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def check_tools(self, params: DiffParams) -> None:
        """Fail early when an external executable the run needs is missing; warn about degraded formats."""
        engine = resolve_engine(params.engine)
        try:
            DiffService.check_dependencies(engine)
        except MissingToolError as e:
            self.error_exit(str(e))

        if not FormatCapabilityTable.from_environment(params.convert_png, engine).vector_capable:
            vectors = ", ".join(sorted(CompareConfig.VECTOR_EXTENSIONS))
            self.warning(f"Vector images ({vectors}) cannot be compared here and will be skipped")

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if self.quiet:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r\033[K  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r\033[K  [{stage}] {current}...")
        sys.stderr.flush()

    def show_diff(self, norm1: str, norm2: str) -> None:
        """Diff viewer handed to the command; runs before temp files are removed."""
        if self.quiet:
            return
        sys.stderr.write("\r\033[K")
        sys.stderr.flush()
        print("=== Markdown Diff ===")
        print()
        DiffService.show_diff(norm1, norm2)

    def run_diff(self, params: DiffParams) -> DiffOutcome:
        """Execute the diff workflow."""
        command = DiffCommand()
        try:
            return command.execute(
                params,
                progress_callback=self.progress_callback,
                diff_viewer=self.show_diff
            )
        except Exception as e:
            if os.environ.get("DEBUG"):
                raise
            if not self.quiet:
                sys.stderr.write("\n")
            self.error_exit(str(e))

    @staticmethod
    def format_match_summary(result: ReconciliationResult, verbose: bool = False) -> List[str]:
        """Lines of the image comparison report."""
        lines = []
        if verbose:
            for pair in result.matched:
                lines.append(f"  [SAME] {pair.image1.name} <-> {pair.image2.name}")

        for pair in result.different:
            line = f"  [DIFF] {pair.image1.name} <-> {pair.image2.name}"
            if pair.has_score:
                line += f" (PSNR: {pair.score:.3f})"
            lines.append(line)
            if verbose and pair.diff_path:
                lines.append(f"         -> {pair.diff_path}")

        for img in result.only_in_first:
            lines.append(f"  [DEL]  {img.name} (only in first document)")
        for img in result.only_in_second:
            lines.append(f"  [ADD]  {img.name} (only in second document)")

        if verbose:
            for img in result.skipped:
                lines.append(f"  [SKIP] {img.name}")

        total = result.total_differences
        if total == 0:
            lines.append("  No image differences found.")
        else:
            lines.append(f"  {total} difference(s) found.")
        return lines

    def output_results(self, outcome: DiffOutcome) -> None:
        """Print the image report and the list of written files."""
        result = outcome.result
        if not self.quiet:
            print()
            print("=== Image Comparison ===")
            print()
        for line in self.format_match_summary(result, self.verbose):
            print(line)

        if self.quiet:
            return

        print()
        print("=== Output ===")
        print(f"  {outcome.diff_md_path}")
        if result.different:
            print(f"  {outcome.diff_imgs_dir}{os.sep} ({len(result.different)} diff images)")
        if result.different or result.only_in_first or result.only_in_second:
            print(f"  {outcome.orig1_dir}{os.sep}")
            print(f"  {outcome.orig2_dir}{os.sep}")
        if self.verbose:
            print(f"  {outcome.markdown1_path}")
            print(f"  {outcome.markdown2_path}")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv=None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        if self.verbose:
            logging.getLogger("ddx").setLevel(logging.INFO)

        self.validate_args(args)
        params = self.create_params(args)
        self.check_tools(params)

        outcome = self.run_diff(params)
        self.output_results(outcome)

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run()
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
