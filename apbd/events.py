from datetime import datetime
from typing import Callable, Dict, List

from apbd.domain import Notification

__all__ = ['Notifier', 'SUCCESS', 'ERROR', 'WARNING', 'INFO', 'LEVELS', 'MESSAGES']

SUCCESS = "success"
ERROR = "error"
WARNING = "warning"
INFO = "info"
LEVELS = (SUCCESS, ERROR, WARNING, INFO)

MESSAGES: Dict[str, str] = {
    "system_error": "Terjadi kesalahan sistem. Silakan coba lagi.",
    "fetch_failed": "Gagal mengambil data dari database",
    "fetch_category_failed": "Gagal mengambil data {kategori}",
    "search_failed": "Gagal melakukan pencarian data",
    "no_category_data": "Tidak ada data {kategori} yang tersedia.",
    "inserted": "Data berhasil ditambahkan!",
    "insert_failed": "Gagal menambahkan data: {error}",
    "updated": "Data berhasil diperbarui!",
    "update_failed": "Gagal memperbarui data: {error}",
    "deleted": "Data berhasil dihapus!",
    "deleted_many": "{count} data berhasil dihapus!",
    "delete_failed": "Gagal menghapus data: {error}",
    "imported": "{count} data berhasil diimpor",
    "import_invalid": "Terdapat {count} data yang tidak valid:\n{errors}",
    "import_failed": "Gagal mengimpor data: {error}",
    "exported": "Data berhasil diekspor!",
    "export_empty": "Tidak ada data untuk diekspor.",
    "export_failed": "Gagal mengekspor data.",
    "search_result": "Ditemukan {count} data",
    "connection_failed": "Gagal menginisialisasi koneksi database. Periksa konfigurasi Supabase.",
}

Handler = Callable[[Notification], None]


class Notifier:
    """Transient on-screen messages, fanned out to whoever renders them."""

    def __init__(self, history_size: int = 50):
        self._subscribers: List[Handler] = []
        self.history: List[Notification] = []
        self.history_size = history_size

    def subscribe(self, handler: Handler) -> None:
        if handler not in self._subscribers:
            self._subscribers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def publish(self, level: str, message: str) -> Notification:
        if level not in LEVELS:
            raise ValueError(f"Unknown notification level: {level}")
        note = Notification(level=level, message=message, ts=datetime.now().isoformat())
        self.history.append(note)
        del self.history[:-self.history_size]
        for handler in list(self._subscribers):
            handler(note)
        return note

    def success(self, message: str) -> Notification:
        return self.publish(SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.publish(ERROR, message)

    def warning(self, message: str) -> Notification:
        return self.publish(WARNING, message)

    def info(self, message: str) -> Notification:
        return self.publish(INFO, message)

    def clear(self) -> None:
        self.history.clear()
