"""后台任务：把阻塞调用（与流程服务的网络往返）移出 UI 线程。

每个任务一个 QThread + worker；结果经排队信号回到 UI 线程，再调用发起方登记的回调，
因此回调里可以安全地修改图模型与发射 UI 信号。
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from PyQt6 import QtCore

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[str], None]


class BackgroundTaskWorker(QtCore.QObject):
    """在工作线程中执行一个无参任务。"""

    succeeded = QtCore.pyqtSignal(str, object)
    failed = QtCore.pyqtSignal(str, str)
    finished = QtCore.pyqtSignal()

    def __init__(self, task_id: str, task: Callable[[], Any]) -> None:
        super().__init__()
        self._task_id = str(task_id)
        self._task = task

    @property
    def task_id(self) -> str:
        return self._task_id

    @QtCore.pyqtSlot()
    def run(self) -> None:
        # 线程边界：异常不能穿出 Qt 槽函数（否则进程直接中止），转为失败信号交给 UI 线程记录
        try:
            result = self._task()
        except Exception as exc:
            self.failed.emit(self._task_id, f"{type(exc).__name__}: {exc}")
        else:
            self.succeeded.emit(self._task_id, result)
        self.finished.emit()


class BackgroundTaskRunner(QtCore.QObject):
    """后台任务调度：持有线程/worker 直到线程退出，已发出的任务不取消。"""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        # task_id -> (thread, worker, on_succeeded, on_failed)
        self._running: Dict[str, Tuple[QtCore.QThread, BackgroundTaskWorker, SuccessCallback, FailureCallback]] = {}
        # 已回传结果但线程可能尚未退出的任务；线程退出前必须持有 worker 引用
        self._retired: List[Tuple[QtCore.QThread, BackgroundTaskWorker]] = []

    @property
    def running_count(self) -> int:
        return len(self._running)

    def is_running(self, task_id: str) -> bool:
        return str(task_id) in self._running

    def start(
        self,
        task_id: str,
        task: Callable[[], Any],
        *,
        on_succeeded: SuccessCallback,
        on_failed: FailureCallback,
    ) -> None:
        task_id = str(task_id)
        if task_id in self._running:
            raise ValueError(f"后台任务ID重复: {task_id}")
        self._prune_retired()

        task_thread = QtCore.QThread(self)
        worker = BackgroundTaskWorker(task_id, task)
        worker.moveToThread(task_thread)

        task_thread.started.connect(worker.run)
        worker.succeeded.connect(self._on_worker_succeeded)
        worker.failed.connect(self._on_worker_failed)
        worker.finished.connect(task_thread.quit)
        task_thread.finished.connect(worker.deleteLater)

        self._running[task_id] = (task_thread, worker, on_succeeded, on_failed)
        task_thread.start()

    def _retire(self, task_id: str):
        entry = self._running.pop(str(task_id), None)
        if entry is not None:
            self._retired.append((entry[0], entry[1]))
        self._prune_retired()
        return entry

    def _prune_retired(self) -> None:
        still_running: List[Tuple[QtCore.QThread, BackgroundTaskWorker]] = []
        for task_thread, worker in self._retired:
            if task_thread.isFinished():
                task_thread.deleteLater()
                continue
            still_running.append((task_thread, worker))
        self._retired = still_running

    @QtCore.pyqtSlot(str, object)
    def _on_worker_succeeded(self, task_id: str, result: object) -> None:
        entry = self._retire(task_id)
        if entry is None:
            # cleanup 之后才落地的结果
            return
        entry[2](result)

    @QtCore.pyqtSlot(str, str)
    def _on_worker_failed(self, task_id: str, message: str) -> None:
        entry = self._retire(task_id)
        if entry is None:
            return
        entry[3](message)

    def cleanup(self, wait_ms: int) -> None:
        threads = [entry[0] for entry in self._running.values()] + [entry[0] for entry in self._retired]
        for task_thread in threads:
            task_thread.quit()
            task_thread.wait(int(wait_ms))
        self._running.clear()
        self._retired.clear()
