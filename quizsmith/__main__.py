"""Command line for quizsmith.

  python -m quizsmith serve [--port PORT] [--host HOST]
  python -m quizsmith stop | restart [--port PORT] | status
  python -m quizsmith generate --topic TOPIC [--subject S] [--count N] [--difficulty D]
                               [--types multiple-choice,definition] [--file PATH]
  python -m quizsmith provider [NAME]
"""
from __future__ import annotations

import asyncio
import json
import mimetypes
import os
import signal
import sys
import time
from pathlib import Path

SERVER_PID = Path(__file__).resolve().parent.parent / ".quizsmith.pid"
DEFAULT_PORT = "8765"
DEFAULT_HOST = "127.0.0.1"


def _flag(args: list[str], name: str, default: str = "") -> str:
    if name in args:
        idx = args.index(name)
        if idx + 1 < len(args):
            return args[idx + 1]
    return default


def _fail(message: str):
    print(message, file=sys.stderr)
    sys.exit(1)


# ── Server management ─────────────────────────────────────────────────────

def _server_pid() -> int | None:
    """PID of the running server; a stale PID file is removed."""
    try:
        pid = int(SERVER_PID.read_text())
    except (FileNotFoundError, ValueError):
        return None
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        SERVER_PID.unlink(missing_ok=True)
        return None
    return pid


def cmd_serve(args: list[str]):
    import uvicorn

    running = _server_pid()
    if running is not None:
        _fail(f"Quizsmith is already serving (PID {running}); run 'stop' or 'restart'.")

    host = _flag(args, "--host", DEFAULT_HOST)
    port = int(_flag(args, "--port", DEFAULT_PORT))
    SERVER_PID.write_text(str(os.getpid()))
    print(f"Quizsmith listening on http://{host}:{port} (Ctrl+C to quit)")
    try:
        uvicorn.run("quizsmith.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        SERVER_PID.unlink(missing_ok=True)


def cmd_stop(args: list[str] | None = None) -> bool:
    pid = _server_pid()
    if pid is None:
        print("No server running.")
        return False
    os.kill(pid, signal.SIGTERM)
    # Give uvicorn its graceful-shutdown window before reporting
    for _ in range(50):
        if _server_pid() is None:
            break
        time.sleep(0.1)
    SERVER_PID.unlink(missing_ok=True)
    print(f"Server {pid} stopped.")
    return True


def cmd_restart(args: list[str]):
    cmd_stop()
    cmd_serve(args)


def cmd_status(args: list[str]):
    from quizsmith.config import load_settings

    pid = _server_pid()
    state = f"running (PID {pid})" if pid is not None else "stopped"
    print(f"Server: {state}")
    print(f"Provider: {load_settings().llm_provider}")


# ── One-shot generation ───────────────────────────────────────────────────

def _attachment(path_arg: str):
    from quizsmith.models import Attachment

    path = Path(path_arg)
    if not path.is_file():
        _fail(f"No such file: {path}")
    mime_type, _ = mimetypes.guess_type(path.name)
    return Attachment(name=path.name, mime_type=mime_type or "application/pdf", data=path.read_bytes())


def cmd_generate(args: list[str]):
    from quizsmith.config import load_settings
    from quizsmith.errors import ProviderConfigurationError
    from quizsmith.models import GenerationRequest
    from quizsmith.providers.registry import get_llm
    from quizsmith.quiz_generator import generate_quiz, options_for
    from quizsmith.search import fetch_topic_context

    file_arg = _flag(args, "--file")
    document = _attachment(file_arg) if file_arg else None
    try:
        request = GenerationRequest(
            topic=_flag(args, "--topic", document.name if document else ""),
            subject=_flag(args, "--subject", "the provided document" if document else "physics"),
            count=int(_flag(args, "--count", "5")),
            difficulty=_flag(args, "--difficulty", "medium"),
            question_types=_flag(args, "--types", "multiple-choice").split(","),
            document=document,
        )
    except ValueError as e:
        _fail(f"Invalid request: {e}")

    s = load_settings()

    async def run():
        llm = get_llm(s)
        print(f"Asking {llm.name()} for {request.count} questions...", file=sys.stderr)
        context = ""
        if s.search_enabled and document is None:
            context = await fetch_topic_context(request.topic, request.subject, num_results=s.search_results)
        return await generate_quiz(llm, request, timeout=s.request_timeout, options=options_for(s), context=context)

    try:
        result = asyncio.run(run())
    except ProviderConfigurationError as e:
        _fail(f"Provider not configured: {e}")
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if result.note:
        print(f"note: {result.note}", file=sys.stderr)


def cmd_provider(args: list[str]):
    from dataclasses import replace

    from quizsmith.config import load_settings, save_settings
    from quizsmith.errors import ProviderConfigurationError
    from quizsmith.providers.registry import KNOWN_PROVIDERS, check_provider_name

    s = load_settings()
    if not args:
        print(f"{s.llm_provider} (available: {', '.join(KNOWN_PROVIDERS)})")
        return
    try:
        name = check_provider_name(args[0])
    except ProviderConfigurationError as e:
        _fail(str(e))
    save_settings(replace(s, llm_provider=name))
    print(f"Provider is now {name}; a running server picks it up after 'restart'.")


COMMANDS = {
    "serve": cmd_serve,
    "stop": cmd_stop,
    "restart": cmd_restart,
    "status": cmd_status,
    "generate": cmd_generate,
    "provider": cmd_provider,
}


def main():
    command, *rest = sys.argv[1:] or ["serve"]
    handler = COMMANDS.get(command)
    if handler is None:
        _fail(f"Unknown command {command!r}; expected one of: {', '.join(COMMANDS)}")
    handler(rest)


if __name__ == "__main__":
    main()
