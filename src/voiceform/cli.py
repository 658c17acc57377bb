"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from typing import Any, Optional

import requests

from .audio_utils import load_audio_file
from .config import DEFAULT_CONFIG_PATH, Config, load_or_default, save_config
from .errors import CaptureError
from .extractor import ExtractionClient, build_field_schema, check_extraction_input
from .fields import field_hint
from .logging_utils import setup_logging
from .manual import ManualEntry
from .models import FieldType, FormTemplate
from .persistence import SubmissionPersistence, build_store, resolve_template
from .pipeline import (
    CaptureController,
    Edit,
    Phase,
    RecordAgain,
    Regenerate,
    Retry,
    Save,
    Start,
    Stop,
    ToggleChoice,
)
from .recorder import MicrophoneCapture, list_input_devices
from .renderer import build_field_view, render_review, render_session
from .session_io import load_submission
from .transcriber import build_transcriber

logger = logging.getLogger("voiceform")

REVIEW_HELP = """Commands:
  key=value            set a field (comma-separate values for multi-choice)
  +key:option          tick a multi-choice option
  -key:option          untick a multi-choice option
  regen <text>         re-run extraction on corrected transcription text
  save                 save the submission
  again                discard and record again
  show                 print the form again
  quit                 leave without saving"""


def _print_notice(level: str, message: str) -> None:
    marks = {"success": "+", "info": "*", "warning": "!", "error": "x"}
    print(f"[{marks.get(level, '*')}] {message}")


def build_controller(
    config: Config,
    template: FormTemplate,
    store,
    public: bool = False,
    actor_id: Optional[str] = None,
) -> CaptureController:
    capture = MicrophoneCapture(
        sample_rate_hz=config.audio.sample_rate_hz,
        channels=config.audio.channels,
        device_name=config.audio.device_name,
    )
    extractor = ExtractionClient(
        config.extraction.url,
        api_key=config.extraction.api_key,
        timeout_s=config.extraction.timeout_s,
    )
    return CaptureController(
        template,
        capture,
        build_transcriber(config.transcription),
        extractor,
        SubmissionPersistence(store),
        notify=_print_notice,
        actor_provider=(lambda: actor_id) if actor_id else None,
        public=public or config.capture.public,
        status_interval_s=config.capture.status_interval_s,
        rating_policy=config.capture.rating_policy,
    )


def _parse_edit(template: FormTemplate, text: str):
    key, _, raw = text.partition("=")
    key = key.strip()
    field = template.get_field(key)
    value: Any = raw.strip()
    if field.type is FieldType.MULTI_CHOICE:
        value = [item.strip() for item in value.split(",") if item.strip()]
    return Edit(key, value)


def _parse_toggle(template: FormTemplate, text: str) -> ToggleChoice:
    included = text.startswith("+")
    key, _, option = text[1:].partition(":")
    template.get_field(key.strip())
    return ToggleChoice(key.strip(), option.strip(), included)


async def _ask(prompt: str) -> str:
    try:
        return (await asyncio.to_thread(input, prompt)).strip()
    except EOFError:
        return "quit"


async def _echo_status(controller: CaptureController) -> None:
    shown = None
    while True:
        message = controller.session.status_message
        if controller.phase is Phase.PROCESSING and message and message != shown:
            print(f"  {message}")
            shown = message
        await asyncio.sleep(0.2)


async def _process_with_status(controller: CaptureController) -> None:
    echo = asyncio.create_task(_echo_status(controller))
    try:
        await controller.dispatch(Stop())
    finally:
        echo.cancel()


async def _review_step(controller: CaptureController, template: FormTemplate) -> bool:
    command = await _ask("review> ")
    if command in ("quit", "q"):
        return False
    if command in ("help", "?"):
        print(REVIEW_HELP)
    elif command == "save":
        await controller.dispatch(Save())
    elif command == "again":
        await controller.dispatch(RecordAgain())
    elif command == "show" or not command:
        print(render_session(controller.session, template.name))
    elif command.startswith("regen "):
        await controller.dispatch(Regenerate(command[len("regen "):]))
        print(render_session(controller.session, template.name))
    elif command[0] in "+-" and ":" in command:
        try:
            await controller.dispatch(_parse_toggle(template, command))
        except KeyError as exc:
            _print_notice("error", f"Unknown field {exc}")
    elif "=" in command:
        try:
            await controller.dispatch(_parse_edit(template, command))
        except KeyError as exc:
            _print_notice("error", f"Unknown field {exc}")
    else:
        print(REVIEW_HELP)
    return True


async def run_capture(controller: CaptureController, template: FormTemplate) -> int:
    async with controller:
        print(render_session(controller.session, template.name))
        while True:
            phase = controller.phase
            if phase is Phase.SUBMITTED:
                print(render_session(controller.session, template.name))
                print(f"Next: {controller.session.redirect_to}")
                return 0
            if phase is Phase.RECORDING:
                await _ask("Recording. Press Enter to stop... ")
                await _process_with_status(controller)
            elif phase is Phase.REVIEWING:
                if not await _review_step(controller, template):
                    return 1
                continue
            else:
                command = await _ask("Press Enter to start recording (q to quit): ")
                if command in ("q", "quit"):
                    return 1
                await controller.dispatch(Retry() if phase is Phase.ERROR else Start())
            print(render_session(controller.session, template.name))




def _prompt_value(field, ask) -> Any:
    hint = field_hint(field)
    raw = ask(f"{field.label}{f' ({hint})' if hint else ''}: ").strip()
    if field.type is FieldType.MULTI_CHOICE:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def run_fill(entry: ManualEntry, ask=input) -> int:
    print(f"# {entry.template.name}")
    print("")
    if entry.offers_select_all:
        choice = ask("Answer every yes/no question: [y]es, [n]o, Enter to go one by one: ")
        if choice.strip().lower() in ("y", "yes"):
            entry.select_all(True)
        elif choice.strip().lower() in ("n", "no"):
            entry.select_all(False)

    for field in entry.template.fields:
        if field.key in entry.review:
            continue
        while True:
            value = _prompt_value(field, ask)
            if value in ("", []):
                break
            try:
                entry.answer(field.key, value)
                break
            except ValueError as exc:
                _print_notice("error", str(exc))

    views = [build_field_view(f, entry.review, True) for f in entry.template.fields]
    print("\n".join(render_review(views)))
    if ask("Submit? [y/N] ").strip().lower() not in ("y", "yes"):
        return 1
    entry.submit()
    _print_notice("success", "Form submitted successfully! Redirecting...")
    print(f"Next: {entry.redirect_to}")
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(prog="voiceform")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Config file.")
    sub = parser.add_subparsers(dest="command")

    devices_cmd = sub.add_parser("devices")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")

    capture_cmd = sub.add_parser("capture")
    capture_cmd.add_argument("template", help="Template id or path to a YAML template.")
    capture_cmd.add_argument(
        "--public", action="store_true", help="Anonymous capture (no actor id)."
    )
    capture_cmd.add_argument("--actor", help="Actor id saved with the submission.")

    transcribe_cmd = sub.add_parser("transcribe")
    transcribe_cmd.add_argument("audio_path", help="Path to audio file.")

    extract_cmd = sub.add_parser("extract")
    extract_cmd.add_argument("template", help="Template id or path to a YAML template.")
    extract_cmd.add_argument("text", help="Transcription text.")

    fill_cmd = sub.add_parser("fill", help="Type answers instead of recording.")
    fill_cmd.add_argument("template", help="Template id or path to a YAML template.")
    fill_cmd.add_argument(
        "--public", action="store_true", help="Anonymous entry (no actor id)."
    )
    fill_cmd.add_argument("--actor", help="Actor id saved with the submission.")

    show_cmd = sub.add_parser("show")
    show_cmd.add_argument("path", help="Path to a saved submission .json")

    sub.add_parser("config", help="Write a default config file.")

    args = parser.parse_args(argv)
    if args.command == "config":
        if os.path.exists(args.config):
            print(f"{args.config} already exists.")
            return 1
        save_config(args.config, Config())
        print(f"Wrote {args.config}")
        return 0

    config = load_or_default(args.config)
    setup_logging(config.log_dir, logging.DEBUG if config.debug else logging.INFO)

    try:
        if args.command == "devices":
            devices = list_input_devices()
            if args.match:
                devices = [
                    d for d in devices if args.match.lower() in d.get("name", "").lower()
                ]
            for device in devices:
                name = device.get("name", "Unknown")
                index = device.get("index", "?")
                channels = device.get("max_input_channels", 0)
                print(f"[{index}] {name} (inputs: {channels})")
            return 0

        if args.command == "capture":
            store = build_store(config.store)
            template = resolve_template(store, args.template)
            controller = build_controller(
                config, template, store, public=args.public, actor_id=args.actor
            )
            return asyncio.run(run_capture(controller, template))

        if args.command == "fill":
            store = build_store(config.store)
            template = resolve_template(store, args.template)
            entry = ManualEntry(
                template,
                SubmissionPersistence(store),
                public=args.public or config.capture.public,
                actor_id=args.actor,
                rating_policy=config.capture.rating_policy,
            )
            return run_fill(entry)

        if args.command == "transcribe":
            blob = load_audio_file(args.audio_path)
            print(build_transcriber(config.transcription).transcribe(blob))
            return 0

        if args.command == "extract":
            template = resolve_template(build_store(config.store), args.template)
            check_extraction_input(args.text, template.fields)
            client = ExtractionClient(
                config.extraction.url,
                api_key=config.extraction.api_key,
                timeout_s=config.extraction.timeout_s,
            )
            result = client.extract(args.text, build_field_schema(template.fields))
            print(json.dumps(result, indent=2))
            return 0

        if args.command == "show":
            record = load_submission(args.path)
            print(f"Submission: {record.id}")
            print(f"Template: {record.template_id}")
            print(f"Created: {record.created_at}")
            if record.actor_id:
                print(f"Actor: {record.actor_id}")
            for key, value in record.form_data.items():
                print(f"  {key}: {value}")
            return 0
    except CaptureError as exc:
        logger.error("%s failed: %s", args.command, exc.reason)
        print(exc.reason)
        return 1
    except LookupError as exc:
        print(exc)
        return 1
    except requests.RequestException as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Store request failed: {exc}")
        return 1
    except (OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(exc)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
