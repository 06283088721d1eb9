"""QObject bridge between the QML shell and the command service."""

import logging

from PySide6.QtCore import QObject, Signal, Slot

from hdrstack.config import config
from hdrstack.service import FILE_DETECTED_EVENT, HdrService

log = logging.getLogger(__name__)


class HdrBridge(QObject):
    """Exposes the service commands as slots and its events as signals."""

    eventEmitted = Signal(str, str)
    fileDetected = Signal(str)
    analyzeFinished = Signal("QVariantMap")
    mergeFinished = Signal("QVariantMap")

    def __init__(self, service: HdrService, parent=None):
        super().__init__(parent)
        self.service = service
        self.service.subscribe(self._relay_event)

    def _relay_event(self, name, payload):
        self.eventEmitted.emit(name, str(payload))
        if name == FILE_DETECTED_EVENT:
            self.fileDetected.emit(str(payload))

    @Slot(str, result="QVariantMap")
    def watcherSetFolder(self, folder):
        result = self.service.watcher_set_folder(folder.strip())
        if result.ok:
            config.set("watcher", "folder", folder.strip())
            config.save()
        return result.to_dict()

    @Slot(result="QVariantMap")
    def watcherStart(self):
        return self.service.watcher_start().to_dict()

    @Slot(result="QVariantMap")
    def watcherStop(self):
        return self.service.watcher_stop().to_dict()

    @Slot(result="QVariantMap")
    def watcherIsRunning(self):
        return self.service.watcher_is_running().to_dict()

    @Slot(result="QVariantList")
    def burstGroups(self):
        return [group.to_dict() for group in self.service.burst_groups()]

    @Slot("QVariantList")
    def analyzeImages(self, paths):
        future = self.service.submit_analyze([str(p) for p in paths])
        future.add_done_callback(lambda f: self.analyzeFinished.emit(f.result().to_dict()))

    @Slot("QVariantMap")
    def mergeHdr(self, request):
        request = dict(request)
        if "outputExr" not in request:
            request["outputExr"] = config.getboolean("merge", "write_exr", fallback=True)
        if not request.get("outputDir"):
            request["outputDir"] = config.get("merge", "output_dir", fallback="") or None
        log.info("Merge requested for %d images", len(request.get("paths", [])))
        future = self.service.submit_merge(request)
        future.add_done_callback(lambda f: self.mergeFinished.emit(f.result().to_dict()))
