"""Headless entry point: watches the configured folder and logs detections."""

import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication

from hdrstack.config import config
from hdrstack.logging_setup import setup_logging
from hdrstack.service import HdrService
from hdrstack.ui.bridge import HdrBridge

log = logging.getLogger(__name__)


def create_bridge() -> HdrBridge:
    service = HdrService(max_workers=config.getint("workers", "max_workers", fallback=2))
    return HdrBridge(service)


def main():
    log_file = setup_logging(config.get("logging", "level", fallback="INFO"))
    log.info("Starting hdrstack (logging to %s)", log_file)

    app = QCoreApplication(sys.argv)
    app.setOrganizationName("hdrstack")
    app.setApplicationName("hdrstack")

    bridge = create_bridge()
    bridge.fileDetected.connect(lambda path: log.info("New image ready: %s", path))

    folder = config.get("watcher", "folder", fallback="")
    if not folder:
        log.error("No watch folder configured. Set [watcher] folder in %s", config.config_path)
        sys.exit(1)

    for result in (bridge.watcherSetFolder(folder), bridge.watcherStart()):
        if not result["ok"]:
            log.error("Could not start watching %s: %s", folder, result["error"])
            sys.exit(1)

    # Graceful shutdown
    app.aboutToQuit.connect(bridge.service.shutdown)
    # The Qt loop never returns to Python, so Ctrl+C has to use the default handler
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
