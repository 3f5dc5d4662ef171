# server.py
import os
import sys
import logging
import threading
from dotenv import load_dotenv

# --------------------------------------------------
# Bootstrap logging (active immediately)
# --------------------------------------------------

def setup_bootstrap_logging():
	logging.basicConfig(
		level=logging.DEBUG,
		format="%(asctime)s | %(levelname)s | BOOTSTRAP | %(message)s",
		stream=sys.stderr,
	)

setup_bootstrap_logging()
_bootstrap_log = logging.getLogger("bootstrap")


def global_exception_hook(exc_type, exc, tb):
	_bootstrap_log.critical(
		"UNHANDLED EXCEPTION",
		exc_info=(exc_type, exc, tb),
	)

sys.excepthook = global_exception_hook


def thread_exception_hook(args):
	_bootstrap_log.critical(
		f"UNHANDLED THREAD EXCEPTION in thread {args.thread.name}",
		exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
	)

threading.excepthook = thread_exception_hook

# --------------------------------------------------
# Imports (after bootstrap logging)
# --------------------------------------------------

from utils.config import load_config
from utils.logging import setup_logging, get_logger

from protocol.setup import setup_protocol

from networking.errors import ListenerError
from networking.tcp_server import listen_and_serve

# --------------------------------------------------

load_dotenv()


def main():
	_bootstrap_log.info("Server process starting")

	# --------------------------------------------------
	# Load configuration
	# --------------------------------------------------
	try:
		config = load_config()
	except Exception:
		_bootstrap_log.critical("Failed to load configuration", exc_info=True)
		raise

	# --------------------------------------------------
	# Optional log cleanup
	# --------------------------------------------------
	clear_log = os.getenv("CLEAR_LOG", "false").lower() == "true"
	if clear_log and config.log_file:
		try:
			with open(config.log_file, "w"):
				pass
		except OSError:
			_bootstrap_log.error(
				f"Failed to clear log file {config.log_file}",
				exc_info=True,
			)

	# --------------------------------------------------
	# Full logging setup
	# --------------------------------------------------
	try:
		setup_logging(config.protocol, config.log_level, config.log_file)
	except Exception:
		_bootstrap_log.critical("Failed to setup logging", exc_info=True)
		raise

	log = get_logger(__name__, config.protocol)
	log.info("Full logging initialized")

	# --------------------------------------------------
	# Protocol
	# --------------------------------------------------
	try:
		handler = setup_protocol(config.protocol)
	except Exception:
		log.critical("Failed to setup protocol", exc_info=True)
		raise

	# --------------------------------------------------
	# Main loop: accept until interrupted. A listener failure is fatal.
	# --------------------------------------------------
	exit_code = 0
	try:
		listen_and_serve(
			config.host,
			config.port,
			handler,
			name=config.protocol,
			max_frame_size=config.max_frame_size,
		)

	except KeyboardInterrupt:
		log.info("Server shutting down (KeyboardInterrupt)")

	except ListenerError:
		log.critical("Listener failed, no more connections can be served", exc_info=True)
		exit_code = 1

	log.info("Server shutdown complete")

	return exit_code


if __name__ == "__main__":
	sys.exit(main())
