"""Command-line front end for the trainer-identity helper."""

import argparse
import asyncio
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

from ..cli.common import (
    add_common_cli_arguments,
    camera_device,
    echo,
    echo_error,
    install_exception_handlers,
    positive_int,
    prompt,
)
from ..core.config_manager import get_config_manager
from ..core.errors import IdentityNotFound, MezastarError
from ..core.logging_config import configure_logging
from ..core.logging_utils import get_module_logger
from ..core.paths import CONFIG_PATH
from ..core.settings import CONFIG_KEYS, HelperSettings, load_settings_async
from ..modules.acquisition.capture import AiofilesFileLoader, OpenCVCameraSource, PillowImageDecoder
from ..modules.acquisition.upload import StillImageScanner
from ..modules.confirmation import ConfirmationFlow, FlowState, FlowStep, build_confirmation_flow
from ..modules.deletion import DeletionGuard
from ..modules.supports import EMPTY_REGISTRY_MESSAGE, open_detail
from ..storage import IdentityStore, TrainerIdentity

logger = get_module_logger("App")

EXIT_OK = 0
EXIT_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mezastar-helper",
        description="Keep Mezastar trainer IDs captured from QR codes",
    )
    add_common_cli_arguments(parser)

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    commands.add_parser("list", help="Show stored trainer IDs")

    add = commands.add_parser("add", help="Store a trainer ID typed by hand")
    add.add_argument("--trainer-id", required=True, help="Trainer ID token")
    add.add_argument("--alias", required=True, help="Display name for the trainer")

    scan = commands.add_parser("scan", help="Scan a trainer QR code with a camera")
    scan.add_argument(
        "--device",
        type=camera_device,
        default=None,
        help="Camera index or device path (default: from config)",
    )
    scan.add_argument("--alias", default=None, help="Alias to store instead of prompting")

    upload = commands.add_parser("upload", help="Read a trainer QR code from an image file")
    upload.add_argument("image", type=Path, help="Image containing the QR code")
    upload.add_argument("--alias", default=None, help="Alias to store instead of prompting")

    delete = commands.add_parser("delete", help="Delete a stored trainer ID")
    delete.add_argument("id", type=positive_int, help="Record id shown by 'list'")
    delete.add_argument(
        "--confirm",
        dest="confirm_text",
        default=None,
        help="Alias typed to confirm (skips the prompt)",
    )

    show = commands.add_parser("show", help="Show a trainer's QR code and support pokemon")
    show.add_argument("trainer_id", help="Trainer ID token")
    show.add_argument("--qr-out", type=Path, default=None, help="Write the trainer QR code to this image file")
    show.add_argument("--registry", type=Path, default=None, help="Support registry JSON (default: from config)")
    show.add_argument(
        "--support-qr-dir",
        type=Path,
        default=None,
        help="Write one QR image per support pokemon into this directory",
    )

    config = commands.add_parser("config", help="Persist a configuration value")
    config.add_argument("key", choices=CONFIG_KEYS)
    config.add_argument("value")

    return parser


async def resolve_settings(args: argparse.Namespace) -> HelperSettings:
    """Config file values, overridden by explicit command-line flags."""
    settings = await load_settings_async(args.config or CONFIG_PATH)
    overrides = {}
    if args.db_path is not None:
        overrides["db_path"] = args.db_path
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if getattr(args, "device", None) is not None:
        settings = settings.with_camera_device(args.device)
    return replace(settings, **overrides)


def _short(token: str) -> str:
    return token if len(token) <= 16 else f"{token[:16]}..."


def _format_created(created_at: int) -> str:
    return datetime.fromtimestamp(created_at / 1000).strftime("%Y-%m-%d %H:%M")


class HelperCommands:
    """One sub-command run against an open identity store."""

    def __init__(self, settings: HelperSettings, store: IdentityStore):
        self.settings = settings
        self.store = store
        self._commands: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "list": self._cmd_list,
            "add": self._cmd_add,
            "scan": self._cmd_scan,
            "upload": self._cmd_upload,
            "delete": self._cmd_delete,
            "show": self._cmd_show,
        }

    async def run(self, args: argparse.Namespace) -> int:
        handler = self._commands[args.command]
        logger.debug("Running command %s", args.command)
        return await handler(args)

    # ================================================================
    # HELPERS
    # ================================================================

    def _new_flow(self, **sources) -> tuple[ConfirmationFlow, list[TrainerIdentity]]:
        saved: list[TrainerIdentity] = []
        flow = build_confirmation_flow(self.store, on_saved=saved.append, **sources)
        return flow, saved

    async def _ask_trainer_id(self, current: str) -> str:
        if not current:
            return await prompt("Trainer ID: ")
        answer = await prompt(f"Trainer ID [{_short(current)}]: ")
        return answer if answer.strip() else current

    async def _complete_entry(
        self,
        flow: ConfirmationFlow,
        saved: list[TrainerIdentity],
        *,
        trainer_id: Optional[str] = None,
        alias: Optional[str] = None,
    ) -> int:
        """Fill the manual-entry step and submit until it is stored.

        With ``alias`` given the submit is attempted once; otherwise the
        operator is prompted again after each inline error.
        """
        interactive = alias is None
        while True:
            if interactive:
                try:
                    token = await self._ask_trainer_id(flow.state.trainer_id)
                    label = await prompt("Alias: ")
                except EOFError:
                    echo()
                    return EXIT_ERROR
            else:
                token = flow.state.trainer_id if trainer_id is None else trainer_id
                label = alias

            await flow.set_trainer_id(token)
            await flow.set_alias(label)
            await flow.submit()

            if saved:
                identity = saved[-1]
                echo(f"Saved {identity.alias} (id {identity.id})")
                return EXIT_OK

            echo_error(flow.state.error or "Failed to add trainer ID")
            if not interactive:
                return EXIT_ERROR

    # ================================================================
    # COMMANDS
    # ================================================================

    async def _cmd_list(self, args: argparse.Namespace) -> int:
        identities = await self.store.list()
        if not identities:
            echo("No trainer IDs stored yet")
            return EXIT_OK
        for identity in identities:
            echo(
                f"{identity.id:>4}  {identity.alias:<20}  {_short(identity.trainer_id):<19}  "
                f"{_format_created(identity.created_at)}"
            )
        return EXIT_OK

    async def _cmd_add(self, args: argparse.Namespace) -> int:
        flow, saved = self._new_flow()
        try:
            await flow.choose_manual()
            return await self._complete_entry(flow, saved, trainer_id=args.trainer_id, alias=args.alias)
        finally:
            await flow.close()

    async def _cmd_scan(self, args: argparse.Namespace) -> int:
        camera_settings = self.settings.camera
        camera = OpenCVCameraSource(
            device=camera_settings.device,
            resolution=camera_settings.resolution,
            fps=camera_settings.fps,
        )
        flow, saved = self._new_flow(camera=camera)
        settled = asyncio.Event()
        last_status = ""

        def on_state(state: FlowState) -> None:
            nonlocal last_status
            if state.step == FlowStep.LIVE_SCAN and state.scan_status and state.scan_status != last_status:
                last_status = state.scan_status
                echo(state.scan_status)
            if state.step == FlowStep.MANUAL_ENTRY or state.error:
                settled.set()

        unsubscribe = flow.subscribe(on_state)
        try:
            await flow.choose_live_scan()
            echo(f"Using camera {camera_settings.device}; press Ctrl+C to stop")
            await flow.start_scan()
            await settled.wait()
            unsubscribe()

            if flow.state.step != FlowStep.MANUAL_ENTRY:
                echo_error(flow.state.error)
                return EXIT_ERROR
            echo(f"Scanned trainer ID {_short(flow.state.trainer_id)}")
            return await self._complete_entry(flow, saved, alias=args.alias)
        finally:
            await flow.close()

    async def _cmd_upload(self, args: argparse.Namespace) -> int:
        scanner = StillImageScanner(AiofilesFileLoader(), PillowImageDecoder())
        flow, saved = self._new_flow(scanner=scanner)
        last_progress = None

        def on_state(state: FlowState) -> None:
            nonlocal last_progress
            if state.progress and state.progress != last_progress:
                echo(state.progress)
            last_progress = state.progress

        unsubscribe = flow.subscribe(on_state)
        try:
            await flow.choose_upload()
            await flow.select_file(args.image)
            unsubscribe()

            if flow.state.step != FlowStep.MANUAL_ENTRY:
                echo_error(flow.state.error or "Failed to process image")
                return EXIT_ERROR
            echo(f"Found trainer ID {_short(flow.state.trainer_id)}")
            return await self._complete_entry(flow, saved, alias=args.alias)
        finally:
            await flow.close()

    async def _cmd_delete(self, args: argparse.Namespace) -> int:
        identity = await self.store.get(args.id)
        if identity is None:
            raise IdentityNotFound(str(args.id))

        guard = DeletionGuard(self.store)
        guard.open(identity)
        echo(f'Delete "{identity.alias}" ({guard.state.description})?')

        while True:
            if args.confirm_text is not None:
                text = args.confirm_text
            else:
                try:
                    text = await prompt(f'Please enter "{identity.alias}" to confirm deletion: ')
                except EOFError:
                    text = ""
                if not text.strip():
                    guard.close()
                    echo("Cancelled")
                    return EXIT_ERROR

            guard.set_confirm_text(text)
            if await guard.confirm():
                echo(f"Deleted {identity.alias}")
                return EXIT_OK

            echo_error(guard.state.error)
            if args.confirm_text is not None:
                guard.close()
                return EXIT_ERROR

    async def _cmd_show(self, args: argparse.Namespace) -> int:
        registry_path = args.registry or self.settings.support_registry
        async with open_detail(self.store, args.trainer_id, registry_path) as detail:
            identity = detail.identity
            echo(identity.alias)
            echo(f"Trainer ID: {identity.trainer_id}")
            echo(f"Added: {_format_created(identity.created_at)}")
            if args.qr_out:
                path = await detail.write_trainer_code(args.qr_out)
                echo(f"QR code written to {path}")

            supports = detail.supports
            echo()
            echo("Support pokemon:")
            if not supports:
                echo(f"  {EMPTY_REGISTRY_MESSAGE}")
            for entry in supports:
                echo(f"  {entry.pokemon:<16} {entry.type:<10} {entry.move}")
            if args.support_qr_dir and supports:
                await detail.write_support_codes(args.support_qr_dir)
                echo(f"Support QR codes written to {args.support_qr_dir}")
        return EXIT_OK


async def _cmd_config(args: argparse.Namespace) -> int:
    config_path = args.config or CONFIG_PATH
    if not get_config_manager().write_config(config_path, {args.key: args.value}):
        echo_error(f"Could not update {config_path}")
        return EXIT_ERROR
    echo(f"{args.key} = {args.value}")
    return EXIT_OK


async def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "config":
        return await _cmd_config(args)

    settings = await resolve_settings(args)
    configure_logging(settings.log_level, force=True, log_file=settings.log_file)
    logger.debug("Using identity store %s", settings.db_path)

    try:
        async with IdentityStore(settings.db_path) as store:
            return await HelperCommands(settings, store).run(args)
    except MezastarError as exc:
        logger.debug("Command %s failed: %r", args.command, exc)
        echo_error(exc.message)
        return EXIT_ERROR


def run(argv: Optional[list[str]] = None) -> int:
    install_exception_handlers(logger.logger)
    try:
        return asyncio.run(main(argv))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(run())
