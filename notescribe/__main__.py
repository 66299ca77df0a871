"""
Command line entry point.

Run with: python -m notescribe <command>
"""

import argparse
import sys
import time
from dataclasses import asdict
from typing import List, Optional

from .config import Config
from .context import ScribeContext
from .errors import InvalidInputError, ScribeError
from .pipeline import NotePipeline
from .types import AudioHandle, Note, TranscriptionResult, BLOB, WEB, mime_type_for


def _print_result(result: TranscriptionResult) -> None:
    print(f"\n[{result.provider}] {result.language}, {result.duration:.1f}s, confidence {result.confidence:.2f}")
    print(result.text)
    for segment in result.segments:
        print(f"  {segment.start:7.2f}-{segment.end:7.2f}  {segment.text}")


def _print_note(note: Note) -> None:
    print(f"\n# {note.title}")
    if note.tags:
        print(f"Tags: {', '.join(note.tags)}")
    print(note.content)
    if note.id:
        print(f"\nSaved as {note.id}")


def _file_handle(ctx: ScribeContext, path: str) -> AudioHandle:
    """Files go straight to the native transport; the web transport needs a blob."""
    if not ctx.config.is_web:
        return AudioHandle.from_path(path)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise InvalidInputError(f"Could not read audio {path}: {e}")
    mime_type = mime_type_for(path)
    return AudioHandle(uri=ctx.blobs.create(data, mime_type), kind=BLOB, mime_type=mime_type, size=len(data))


def cmd_transcribe(ctx: ScribeContext, args) -> int:
    pipeline = NotePipeline(ctx.recorder, ctx.transcriber, ctx.compiler, ctx.store)
    handle = _file_handle(ctx, args.file)
    try:
        result = pipeline.transcribe_file(handle)
    finally:
        if handle.kind == BLOB:
            ctx.blobs.revoke(handle.uri)
    _print_result(result)

    if args.notes or args.user:
        note = pipeline.compile(result)
        if args.user:
            note.id = ctx.store.save(args.user, note)
        _print_note(note)
    return 0


def cmd_record(ctx: ScribeContext, args) -> int:
    if ctx.config.is_web:
        print("Recording from the command line needs the native platform")
        return 2

    pipeline = NotePipeline(ctx.recorder, ctx.transcriber, ctx.compiler, ctx.store if args.user else None)
    pipeline.start()
    print(f"Recording for {args.seconds:g}s... (Ctrl+C to stop early)")
    try:
        time.sleep(args.seconds)
    except KeyboardInterrupt:
        pass

    if args.notes or args.user:
        _print_note(pipeline.finish(args.user or ""))
    else:
        _print_result(pipeline.stop_and_transcribe())
    return 0


def cmd_set_key(ctx: ScribeContext, args) -> int:
    ctx.credentials.save(args.name, args.value)
    return 0


def cmd_notes(ctx: ScribeContext, args) -> int:
    if args.action == "list":
        page = ctx.store.list(args.user, page=args.page)
        notes = page.items
    else:
        notes = ctx.store.search(args.user, args.keyword or "")
        page = None

    for note in notes:
        print(f"{note.id}  {note.created_at[:19]}  {note.title}  [{', '.join(note.tags)}]")
    if page is not None and page.has_more:
        print(f"... more on page {args.page + 1}")
    if args.verbose:
        for note in notes:
            print(asdict(note))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notescribe", description="Clinical voice notes")
    parser.add_argument("--web", action="store_true", help="Use the web target (proxied transport)")
    parser.add_argument("--debug", action="store_true", help="Verbose diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("transcribe", help="Transcribe an audio file")
    p.add_argument("file")
    p.add_argument("--notes", action="store_true", help="Also compile structured notes")
    p.add_argument("--user", help="Save the compiled note for this user id")
    p.set_defaults(func=cmd_transcribe)

    p = sub.add_parser("record", help="Record from the microphone, then transcribe")
    p.add_argument("seconds", type=float)
    p.add_argument("--notes", action="store_true", help="Also compile structured notes")
    p.add_argument("--user", help="Save the compiled note for this user id")
    p.set_defaults(func=cmd_record)

    p = sub.add_parser("set-key", help="Store a credential in secure storage (native only)")
    p.add_argument("name")
    p.add_argument("value")
    p.set_defaults(func=cmd_set_key)

    p = sub.add_parser("notes", help="List or search saved notes")
    p.add_argument("action", choices=["list", "search"])
    p.add_argument("user")
    p.add_argument("keyword", nargs="?")
    p.add_argument("--page", type=int, default=0)
    p.add_argument("--verbose", "-v", action="store_true")
    p.set_defaults(func=cmd_notes)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = Config.load()
    if args.web:
        config.platform = WEB
    if args.debug:
        config.debug = True

    with ScribeContext.create(config) as ctx:
        try:
            return args.func(ctx, args)
        except ScribeError as e:
            print(f"Error: {e}")
            return 1


if __name__ == "__main__":
    sys.exit(main())
