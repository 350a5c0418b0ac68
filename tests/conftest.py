"""pytest configuration and fixtures for pyqt-multiselect tests."""

import pytest
from PyQt6.QtCore import QCoreApplication

from pyqt_multiselect.protocols import RemoteView, set_combo_config


@pytest.fixture(scope="session")
def qapp():
    """Create QCoreApplication instance for tests."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
    # Don't quit - may cause issues with other tests


@pytest.fixture(autouse=True)
def reset_combo_config():
    """Every test starts from the default configuration."""
    set_combo_config(None)
    yield
    set_combo_config(None)


class RecordingView(RemoteView):
    """Remote view double recording every call in order."""

    def __init__(self):
        self.calls = []

    def resize(self, size):
        self.calls.append(("resize", size))

    def set_range(self, offset, items):
        self.calls.append(("set_range", offset, list(items)))

    def commit(self, update_id, filter_text):
        self.calls.append(("commit", update_id, filter_text))

    def set_selected_items(self, items):
        self.calls.append(("selected", list(items)))

    def set_client_side_filtering(self, enabled):
        self.calls.append(("client_side", enabled))

    def of(self, kind):
        return [call for call in self.calls if call[0] == kind]

    def labels(self):
        return [item["label"] for call in self.of("set_range") for item in call[2]]

    def clear(self):
        self.calls = []


@pytest.fixture
def recording_view():
    return RecordingView()


@pytest.fixture
def recording_view_factory():
    return RecordingView


@pytest.fixture
def fruits():
    return ["Apple", "Apricot", "Banana", "Blueberry", "Cherry", "Date", "Elderberry", "Fig"]
