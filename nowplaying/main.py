"""
Main CLI interface for nowplaying-sync

This module provides the command-line interface for following what Spotify is
playing: live lyric display with an optional synced companion video, one-shot
playback and lyric lookups, and configuration inspection.

The CLI is built using Click framework and provides:
- watch: run the synchronization engine until interrupted
- now: show the current playback snapshot once
- lyrics: resolve time-aligned lyrics for an arbitrary track
- config show: display the effective configuration
"""

import sys
import asyncio
import click
import functools
from typing import Optional

# Import application modules for core functionality
from . import __version__
from .config.settings import get_settings, reload_settings
from .config.auth import get_auth
from .exceptions import AuthError
from .lyrics.resolver import get_lyric_resolver
from .spotify.client import get_playback_client
from .spotify.models import CurrentPlaybackView, PlaybackSnapshot
from .sync.engine import ActiveLyricLine, NowPlayingEngine
from .sync.handle import HeadlessPlaybackHandle
from .utils.logger import configure_from_settings, get_logger, get_current_log_file
from .utils.helpers import format_duration, format_timestamp_ms


# Initialize logging system from configuration settings
configure_from_settings()
logger = get_logger(__name__)


def print_banner():
    """
    Print application banner to console

    Displays a styled banner with application title and brief description.
    """
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                        nowplaying-sync                        ║
║                                                               ║
║    Live lyrics + companion video for what Spotify is playing  ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Wraps CLI command functions to provide consistent error handling across
    all commands. Authentication failures get a setup hint; everything else
    is logged and reported with exit code 1.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            # Handle user cancellation gracefully
            click.echo(click.style("\n\nStopped by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except AuthError as e:
            logger.error(f"Authentication failed: {e}")
            click.echo(click.style(f"Authentication error: {e}", fg='red'), err=True)
            click.echo("Set SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET and SPOTIFY_REFRESH_TOKEN", err=True)
            sys.exit(1)
        except Exception as e:
            # Log error for debugging and show user-friendly message
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)  # Standard exit code for general errors
    return wrapper


def format_view(view: CurrentPlaybackView) -> str:
    """
    One-line rendering of the current playback view

    Args:
        view: Playback view to render

    Returns:
        Human readable status line
    """
    if not view.track_title:
        return "Nothing playing"

    state = "Playing" if view.is_playing else "Paused"
    line = f"{state}: {', '.join(view.artists)} - {view.track_title}"
    if view.album_name:
        line += f" [{view.album_name}]"
    line += f"  {view.progress_str}"
    if view.stale:
        line += " (stale)"
    return line


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    nowplaying-sync - Live lyrics for what Spotify is playing

    Follows the track currently playing on your Spotify account, shows the
    active lyric line as the song progresses, and keeps a companion video
    from YouTube Music in step with the music.
    """
    # Ensure Click context exists for subcommands
    ctx.ensure_object(dict)

    # Handle version information display
    if version:
        click.echo(f"nowplaying-sync {__version__}")
        return

    # Handle custom config file loading
    if config:
        reload_settings(config)
        configure_from_settings()
        click.echo(f"Loaded config: {config}")

    # Enable verbose logging if requested
    if verbose:
        ctx.obj['verbose'] = True
        logger.info("Verbose mode enabled")

    # If no subcommand provided, show banner and help
    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.option('--companion/--no-companion', default=None,
              help='Drive a companion player (defaults to the configured setting)')
@click.pass_context
@handle_error
def watch(ctx, companion):
    """
    Follow playback and print lyric lines as they become active

    Runs until interrupted with Ctrl-C. Exits with an error when no Spotify
    access token can be obtained.
    """
    settings = get_settings()
    verbose = ctx.obj.get('verbose', False) if ctx.obj else False

    if companion is None:
        companion = settings.companion.enabled

    if not get_auth().is_authenticated():
        raise AuthError("Spotify credentials are not configured")

    handle = HeadlessPlaybackHandle() if companion else None

    def on_track_change(snapshot: PlaybackSnapshot) -> None:
        click.echo()
        click.echo(click.style(f"♪ {snapshot.all_artists} - {snapshot.track_title}", fg='cyan', bold=True))
        if verbose and snapshot.album_name:
            click.echo(f"   Album: {snapshot.album_name}")

    def on_lyric_change(line: Optional[ActiveLyricLine]) -> None:
        if line is None:
            return
        prefix = f"[{format_timestamp_ms(line.time_ms)}] " if verbose else "   "
        click.echo(f"{prefix}{line.text}")

    engine = NowPlayingEngine(
        handle=handle,
        settings=settings,
        on_lyric_change=on_lyric_change,
        on_track_change=on_track_change
    )

    print_banner()
    click.echo("Waiting for playback... (Ctrl-C to stop)")
    if companion:
        click.echo("Companion player: headless")

    asyncio.run(engine.run())


@cli.command()
@handle_error
def now():
    """
    Show what is playing right now

    Fetches a single playback snapshot and prints it.
    """
    client = get_playback_client()
    snapshot = asyncio.run(client.fetch())
    view = CurrentPlaybackView.from_snapshot(snapshot, snapshot.progress_ms)

    click.echo(format_view(view))
    if view.artwork_url:
        click.echo(f"   Artwork: {view.artwork_url}")


@cli.command()
@click.argument('artist')
@click.argument('title')
@click.option('--duration', type=int, help='Track duration in seconds (used to pace plain-text lyrics)')
@handle_error
def lyrics(artist, title, duration):
    """
    Resolve lyrics for a track and print them with timestamps

    Sources are tried in the configured order; plain-text lyrics are spread
    evenly across the track duration.
    """
    resolver = get_lyric_resolver()
    duration_ms = duration * 1000 if duration else None

    click.echo(f"Searching lyrics for: {artist} - {title}")
    lyric_set = asyncio.run(resolver.resolve(title, artist, duration_ms))

    if not lyric_set:
        click.echo("No lyrics found")
        return

    timing = "synced" if lyric_set.synced else "estimated timing"
    click.echo(f"Source: {lyric_set.source} ({timing}, {len(lyric_set)} lines)\n")
    for line in lyric_set:
        click.echo(line.to_lrc())


# Configuration commands group
@cli.group()
def config():
    """
    Configuration management

    Command group for viewing the effective configuration.
    """
    pass


@config.command()
@handle_error
def show():
    """
    Show current configuration

    Displays polling, lyrics, companion and network settings. Credentials are
    only reported as set or missing.
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Spotify:")
    click.echo(f"   Client ID: {'set' if settings.spotify.client_id else 'missing'}")
    click.echo(f"   Refresh token: {'set' if settings.spotify.refresh_token else 'missing'}")

    click.echo("\nPlayback:")
    click.echo(f"   Poll interval: {settings.playback.poll_interval}s")
    click.echo(f"   Lyric tick: {settings.playback.lyric_tick_interval}s")

    click.echo("\nLyrics:")
    click.echo(f"   Enabled: {settings.lyrics.enabled}")
    click.echo(f"   Sources: {', '.join(settings.lyrics.sources)}")
    click.echo(f"   Genius token: {'set' if settings.lyrics.genius_api_key else 'missing'}")
    click.echo(f"   Default duration: {format_duration(settings.lyrics.default_duration_ms // 1000)}")
    click.echo(f"   Cache TTL: {settings.lyrics.found_ttl}s found / {settings.lyrics.empty_ttl}s empty")

    click.echo("\nCompanion:")
    click.echo(f"   Enabled: {settings.companion.enabled}")
    click.echo(f"   Search filter: {settings.companion.search_filter}")
    click.echo(f"   Drift threshold: {settings.companion.drift_threshold_ms}ms")
    click.echo(f"   Seek cooldown: {settings.companion.cooldown_ms}ms")

    click.echo("\nNetwork:")
    click.echo(f"   Request timeout: {settings.network.request_timeout}s")
    click.echo(f"   Timeout retries: {settings.network.timeout_retries}")

    current_log = get_current_log_file()
    click.echo(f"\nLogging: {current_log if current_log else 'console only'}")


# Entry point for module execution
if __name__ == '__main__':
    cli()
