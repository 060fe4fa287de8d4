"""CLI entry point for bucketfs."""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from bucketfs.commands.doctor import run_doctor
from bucketfs.commands.files import (
    run_cat,
    run_get,
    run_ls,
    run_mv,
    run_put,
    run_rm,
    run_stat,
)
from bucketfs.exceptions import BucketFsError

if TYPE_CHECKING:
    from typing import TypeAlias

    _Subparsers: TypeAlias = argparse._SubParsersAction[argparse.ArgumentParser]


class CliApp:
    """Command-line interface for bucketfs."""

    def __init__(self) -> None:
        """Build the argument parser once per application instance."""
        self._parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Random-access file utilities over an S3 bucket.",
        )
        parser.add_argument(
            "--config",
            default=None,
            help=(
                "Path to YAML config (default: ~/.config/bucketfs/config.yaml "
                "or BUCKETFS_CONFIG)."
            ),
        )
        parser.add_argument(
            "--bucket",
            "-b",
            default=None,
            help="Bucket name (overrides config and BUCKETFS_BUCKET).",
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        self._add_ls_parser(subparsers)
        self._add_path_parser(subparsers, "stat", "Show size and mtime of an object.")
        self._add_path_parser(subparsers, "cat", "Write an object to stdout.")
        self._add_transfer_parsers(subparsers)
        self._add_rm_parser(subparsers)
        self._add_mv_parser(subparsers)
        subparsers.add_parser(
            "doctor",
            help="Check configuration, credentials and bucket access.",
        )

        return parser

    def _add_ls_parser(
        self,
        subparsers: _Subparsers,
    ) -> None:
        """Add the ``ls`` command parser."""
        parser = subparsers.add_parser(
            "ls",
            help="List objects under a path prefix.",
        )
        parser.add_argument(
            "path",
            nargs="?",
            default="",
            help="Path prefix (directory paths end with '/').",
        )
        parser.add_argument(
            "--limit",
            "-n",
            type=int,
            default=0,
            help="Maximum number of entries to show (0 = all).",
        )

    def _add_path_parser(
        self,
        subparsers: _Subparsers,
        name: str,
        help_text: str,
    ) -> None:
        """Add a command parser that takes a single object path."""
        parser = subparsers.add_parser(name, help=help_text)
        parser.add_argument("path", help="Object path inside the bucket.")

    def _add_transfer_parsers(
        self,
        subparsers: _Subparsers,
    ) -> None:
        """Add the ``put`` and ``get`` command parsers."""
        put = subparsers.add_parser("put", help="Upload a local file.")
        put.add_argument("local", help="Local file to upload.")
        put.add_argument("path", help="Destination object path.")

        get = subparsers.add_parser("get", help="Download an object.")
        get.add_argument("path", help="Source object path.")
        get.add_argument("local", help="Local destination file.")

    def _add_rm_parser(
        self,
        subparsers: _Subparsers,
    ) -> None:
        """Add the ``rm`` command parser."""
        parser = subparsers.add_parser("rm", help="Delete objects.")
        parser.add_argument("path", help="Object path or prefix.")
        parser.add_argument(
            "--recursive",
            "-r",
            action="store_true",
            help="Delete every object under the path prefix.",
        )

    def _add_mv_parser(
        self,
        subparsers: _Subparsers,
    ) -> None:
        """Add the ``mv`` command parser."""
        parser = subparsers.add_parser("mv", help="Rename an object.")
        parser.add_argument("old", help="Existing object path.")
        parser.add_argument("new", help="New object path.")

    def _run_command(self, args: argparse.Namespace) -> None:
        """Call the handler for ``args.command``; library errors exit non-zero."""
        commands = {
            "ls": run_ls,
            "stat": run_stat,
            "cat": run_cat,
            "put": run_put,
            "get": run_get,
            "rm": run_rm,
            "mv": run_mv,
            "doctor": run_doctor,
        }
        handler = commands.get(args.command)
        if handler is None:
            sys.exit(f"Unknown command: {args.command}")
        try:
            handler(args)
        except BucketFsError as e:
            sys.exit(str(e))

    def run(self, argv: list[str] | None = None) -> None:
        """Parse *argv* (``sys.argv`` when None) and run the chosen command."""
        args = self._parser.parse_args(argv)
        self._run_command(args)


def main(argv: list[str] | None = None) -> None:
    """Console-script entry point."""
    CliApp().run(argv)


if __name__ == "__main__":
    main()
