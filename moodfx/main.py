"""Entry point and argument parsing for moodfx.

Subcommands
-----------
serve     Run the engine as a headless daemon with a Unix socket interface.
cli       Connect to a running server and open an interactive session.
watch     Follow scene events from a running server.
simulate  Run the game simulator, broadcasting scene tags over WebSocket.
"""

from __future__ import annotations

import argparse
import logging

from moodfx.controllers.game_link import DEFAULT_GAME_PORT
from moodfx.host import MoodCore
from moodfx.logging_setup import configure_logging
from moodfx.models import BUFFER_SIZE, SAMPLE_RATE
from moodfx.paths import DEFAULT_SESSION_PATH, DEFAULT_SOCK_PATH


logger = logging.getLogger(__name__)


# -- shared helpers ----------------------------------------------------------

def _add_host_args(parser: argparse.ArgumentParser):
    parser.add_argument("--sr", type=int, default=SAMPLE_RATE, help="Sample rate")
    parser.add_argument("--buf", type=int, default=BUFFER_SIZE, help="Buffer size")
    parser.add_argument("--bpm", type=float, default=120.0,
                        help="Tempo for note-valued effect times")
    parser.add_argument("--link", action="store_true",
                        help="Enable Ableton Link on start")
    parser.add_argument("--load", default=None, help="Audio file to load on start")
    parser.add_argument("--play", action="store_true",
                        help="Start playback once the file is loaded")
    parser.add_argument("--game", default=None, metavar="HOST[:PORT]",
                        help=f"Game signal server (default port {DEFAULT_GAME_PORT})")
    parser.add_argument("--pads", default=None, metavar="PORT",
                        help="MIDI pad input (index, name fragment, or 'virtual')")
    parser.add_argument("--output", default=None, help="Audio output device")
    parser.add_argument("--session", default=None,
                        help=f"Session file path (default: {DEFAULT_SESSION_PATH})")
    parser.add_argument("--no-restore", action="store_true",
                        help="Skip restoring the previous session on startup")


def _boot_host(args) -> MoodCore:
    """Create a MoodCore from parsed arguments and bring up its inputs."""
    host = MoodCore(sample_rate=args.sr, buffer_size=args.buf,
                    session_path=args.session)
    host.link.bpm = args.bpm

    if not args.no_restore:
        try:
            host.restore_session()
        except Exception as e:
            logger.warning("session restore failed: %s", e)

    if args.load:
        try:
            host.load_audio(args.load)
        except Exception as e:
            logger.warning("could not load '%s': %s", args.load, e)

    if args.play and host.registry.loaded:
        host.play()

    if args.link:
        try:
            host.start_link(args.bpm)
        except Exception as e:
            logger.warning("link startup failed: %s", e)

    if args.pads is not None:
        port = None if args.pads == "virtual" else args.pads
        try:
            host.open_pads(port)
        except Exception as e:
            logger.warning("pad MIDI startup failed: %s", e)

    if args.game:
        try:
            host.connect_game(args.game)
        except Exception as e:
            logger.warning("game link startup failed: %s", e)

    return host


# -- subcommand handlers -----------------------------------------------------

def _cmd_serve(args):
    from moodfx.server import run_server

    level = configure_logging(default_level="INFO")
    logger.info("moodfx server starting (log level: %s)", logging.getLevelName(level))

    host = _boot_host(args)

    output_device = args.output
    if isinstance(output_device, str) and output_device.isdigit():
        output_device = int(output_device)
    try:
        host.start_audio(output_device)
    except Exception as e:
        logger.warning("audio auto-start failed: %s", e)

    run_server(host, args.sock)


def _cmd_cli(args):
    from moodfx.client import connect, send_command

    if args.command_line:
        print(send_command(args.sock, " ".join(args.command_line)), end="")
        return
    connect(args.sock)


def _cmd_watch(args):
    from moodfx.client import watch

    try:
        watch(args.sock)
    except KeyboardInterrupt:
        pass


def _cmd_simulate(args):
    from moodfx.controllers.simulator import GameSimulator

    configure_logging(default_level="INFO")
    sim = GameSimulator(min_interval=args.min_interval,
                        max_interval=args.max_interval, seed=args.seed)
    sim.run_server(args.host, args.port)
    try:
        sim.run_forever()
    except KeyboardInterrupt:
        pass
    finally:
        sim.close()


# -- main --------------------------------------------------------------------

def main(argv=None):
    ap = argparse.ArgumentParser(
        description="moodfx - scene-driven adaptive audio effects")
    sub = ap.add_subparsers(dest="command")

    sp_serve = sub.add_parser(
        "serve", help="Run headless with a Unix socket control interface")
    _add_host_args(sp_serve)
    sp_serve.add_argument("--sock", default=None,
                          help=f"Unix socket path (default: {DEFAULT_SOCK_PATH})")
    sp_serve.set_defaults(func=_cmd_serve)

    sp_cli = sub.add_parser("cli", help="Connect to a running moodfx server")
    sp_cli.add_argument("--sock", default=None,
                        help=f"Unix socket path (default: {DEFAULT_SOCK_PATH})")
    sp_cli.add_argument("command_line", nargs="*",
                        help="Run one command and exit instead of prompting")
    sp_cli.set_defaults(func=_cmd_cli)

    sp_watch = sub.add_parser("watch", help="Follow scene events from a running server")
    sp_watch.add_argument("--sock", default=None,
                          help=f"Unix socket path (default: {DEFAULT_SOCK_PATH})")
    sp_watch.set_defaults(func=_cmd_watch)

    sp_sim = sub.add_parser("simulate", help="Broadcast random game states over WebSocket")
    sp_sim.add_argument("--host", default="127.0.0.1", help="Bind address")
    sp_sim.add_argument("--port", type=int, default=DEFAULT_GAME_PORT, help="WebSocket port")
    sp_sim.add_argument("--min-interval", type=float, default=5.0,
                        help="Shortest time between states (seconds)")
    sp_sim.add_argument("--max-interval", type=float, default=15.0,
                        help="Longest time between states (seconds)")
    sp_sim.add_argument("--seed", type=int, default=None, help="Random seed")
    sp_sim.set_defaults(func=_cmd_simulate)

    args = ap.parse_args(argv)
    if args.command is None:
        ap.error("a command is required: serve, cli, watch or simulate")
    args.func(args)


if __name__ == "__main__":
    main()
