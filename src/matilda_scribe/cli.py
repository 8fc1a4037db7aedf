#!/usr/bin/env python3
"""Command line entry point: transcribe a WAV recording."""

import rich_click as click

# Configure rich-click to enable markup - MUST be first!
click.rich_click.USE_RICH_MARKUP = True

click.rich_click.STYLE_OPTION = "#ff79c6"
click.rich_click.STYLE_ARGUMENT = "#8be9fd"
click.rich_click.STYLE_COMMAND = "#50fa7b"
click.rich_click.STYLE_USAGE = "#bd93f9"
click.rich_click.STYLE_HELPTEXT = "#b3b8c0"

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

from rich.console import Console
from rich.table import Table

from . import __version__
from .app import TranscriptionCoordinator
from .audio.sources import wav_file_source
from .core.config import load_config, setup_logging
from .output.injection import PYNPUT_AVAILABLE, ConsoleTextSink, KeyboardTextInjector
from .output.notifications import NotificationManager
from .transcription.types import STTProviderType

console = Console()


def _show_models(provider_type: STTProviderType) -> None:
    table = Table(title=f"{provider_type.value} models")
    table.add_column("Model", style="cyan")
    table.add_column("REST", justify="center")
    table.add_column("Realtime", justify="center")
    for model in provider_type.all_models:
        table.add_row(
            model,
            "✓" if model in provider_type.rest_models else "",
            "✓" if provider_type.supports_realtime(model) else "",
        )
    console.print(table)


async def _transcribe(args) -> int:
    config = load_config(args.config)
    logger = setup_logging(
        "matilda_scribe",
        log_level="DEBUG" if args.debug else None,
        include_console=True if args.debug else None,
    )

    if args.keyboard:
        if not PYNPUT_AVAILABLE:
            console.print("[red]Keyboard injection needs pynput: pip install goobits-matilda-scribe\\[keyboard][/red]")
            return 2
        sink = KeyboardTextInjector(add_trailing_space=config.get_add_trailing_space())
    else:
        sink = ConsoleTextSink(console)

    notifications = NotificationManager()
    coordinator = TranscriptionCoordinator(config, text_sink=sink, notifications=notifications)
    provider_config = config.provider_config(
        model=args.model,
        language=args.language,
        system_prompt=args.prompt,
        keywords=tuple(args.keyword) or None,
    )
    logger.info(f"Transcribing {args.file} with {provider_config!r}")

    try:
        source = wav_file_source(
            args.file,
            chunk_ms=args.chunk_ms or config.audio_chunk_ms,
            target_rate=config.audio_sample_rate,
            pace=args.pace,
        )
        await coordinator.start_transcription(source, provider_config, use_realtime=args.realtime)
        await coordinator.wait_idle()

        while notifications.pending_retry is not None and sys.stdin.isatty():
            if not click.confirm("Retry transcription?", default=True):
                break
            if not await coordinator.request_retry():
                console.print("[yellow]Retry is no longer available[/yellow]")
                break
            await coordinator.wait_idle()

        if args.copy:
            if coordinator.copy_last_transcription():
                console.print("[green]Copied to clipboard[/green]")
            else:
                console.print("[yellow]Nothing copied to the clipboard[/yellow]")
    finally:
        await coordinator.close()

    failed = any(service.state.error is not None for service in coordinator.services)
    return 1 if failed else 0


@click.command(context_settings={"allow_extra_args": False})
@click.version_option(version=__version__, prog_name="Matilda Scribe")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=False)
@click.option("--config", type=click.Path(dir_okay=False, path_type=Path), help=" ⚙️  Configuration file path")
@click.option("--realtime/--rest", default=None, help=" ⚡ Force the realtime or the REST path")
@click.option("--model", help=" 🤖 Transcription model (see --models)")
@click.option("--language", help=" 🌍 Language code (e.g., 'en', 'es', 'fr')")
@click.option("--prompt", help=" 📝 System prompt sent with the audio")
@click.option("--keyword", multiple=True, help=" 🔑 Vocabulary hint (repeatable)")
@click.option("--chunk-ms", type=int, help=" 🔊 Audio chunk duration in milliseconds")
@click.option("--pace", is_flag=True, help=" ⏱️  Stream the file at real-time speed")
@click.option("--keyboard", is_flag=True, help=" ⌨️  Type the transcript into the focused window")
@click.option("--copy", is_flag=True, help=" 📎 Copy the transcript to the clipboard")
@click.option("--models", is_flag=True, help=" 📋 List available models")
@click.option("--debug", is_flag=True, help=" 🐛 Enable detailed debug logging")
@click.pass_context
def main(ctx, file, config, realtime, model, language, prompt, keyword, chunk_ms, pace, keyboard, copy, models, debug):
    """🎙️ [bold cyan]Matilda Scribe[/bold cyan] - Dictation transcription with realtime streaming

    \b
    [bold yellow]🎯 Quick Start:[/bold yellow]
    \b
      [green]matilda-scribe note.wav[/green]                  [italic]# Realtime when the model supports it[/italic]
      [green]matilda-scribe note.wav --rest[/green]           [italic]# One-shot upload[/italic]
      [green]matilda-scribe note.wav --keyword Kubernetes[/green]

    \b
    [bold yellow]🔑 Setup:[/bold yellow]
    \b
      Export [green]OPENAI_API_KEY[/green] or set [green]openai.api_key[/green] under [green]\\[scribe][/green]
      in ~/.matilda/config.toml
    """
    if models:
        _show_models(STTProviderType.OPENAI)
        return

    if file is None:
        click.echo(ctx.get_help())
        return

    args = SimpleNamespace(
        file=file,
        config=config,
        realtime=realtime,
        model=model,
        language=language,
        prompt=prompt,
        keyword=keyword,
        chunk_ms=chunk_ms,
        pace=pace,
        keyboard=keyboard,
        copy=copy,
        debug=debug,
    )

    try:
        exit_code = asyncio.run(_transcribe(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        exit_code = 130
    except Exception as e:
        console.print(f"\n[red]Error: {str(e)}[/red]")
        if debug:
            console.print_exception()
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
