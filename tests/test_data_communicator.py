"""Tests for DataCommunicator paging, diffing and key passivation."""

import pytest


def attached(view, items, page_size=5, **kwargs):
    """Communicator over a BoundedItemSource with ``view`` attached."""
    from pyqt_multiselect.core import BoundedItemSource, DataCommunicator

    communicator = DataCommunicator(page_size=page_size, **kwargs)
    communicator.set_data_provider(BoundedItemSource(items))
    communicator.attach(view)
    return communicator


def paged_source(items, calls):
    from pyqt_multiselect.core import CallbackItemSource

    def fetch(filter, offset, limit):
        calls.append((filter, offset, limit))
        return items[offset:offset + limit]

    return CallbackItemSource(fetch, lambda filter: len(items))


def test_requested_window_is_fetched_lazily(recording_view):
    """Only the requested slice of a large callback source is fetched."""
    from pyqt_multiselect.core import DataCommunicator

    items = [f"Item {i}" for i in range(120)]
    calls = []
    communicator = DataCommunicator()
    communicator.set_data_provider(paged_source(items, calls))
    communicator.attach(recording_view)

    communicator.request_range(50, 50, "")
    communicator.flush()

    assert calls == [(None, 50, 50)]
    assert recording_view.calls[0] == ("client_side", False)
    assert recording_view.calls[1] == ("resize", 120)
    offset, rows = recording_view.calls[2][1:]
    assert offset == 50
    assert [row["label"] for row in rows] == items[50:100]
    assert recording_view.calls[3] == ("commit", 1, "")
    assert len(recording_view.calls) == 4


def test_client_side_filtering_up_to_page_size(recording_view):
    """A data set that fits in one page is sent whole and filtered by the view."""
    items = [f"Item {i}" for i in range(50)]
    communicator = attached(recording_view, items, page_size=50)
    communicator.flush()

    assert communicator.client_side_filtering
    assert recording_view.of("client_side") == [("client_side", True)]
    assert recording_view.labels() == items


def test_server_side_filtering_above_page_size(recording_view):
    """One item more than the page size moves filtering to this side."""
    items = [f"Item {i}" for i in range(51)]
    communicator = attached(recording_view, items, page_size=50)
    communicator.flush()

    assert not communicator.client_side_filtering
    assert recording_view.of("client_side") == [("client_side", False)]
    assert recording_view.of("resize") == [("resize", 51)]
    assert len(recording_view.labels()) == 50


def test_custom_item_filter_forces_server_side(recording_view):
    """Even a tiny data set filters here once a custom filter is set."""
    communicator = attached(
        recording_view, ["Apple", "Banana"], page_size=50,
        item_filter=lambda item, text: item.endswith(text),
    )
    communicator.flush()
    assert not communicator.client_side_filtering

    recording_view.clear()
    communicator.request_range(0, 50, "na")
    communicator.flush()
    assert recording_view.of("resize") == [("resize", 1)]
    assert recording_view.labels() == ["Banana"]


def test_only_changed_rows_are_sent(recording_view, fruits):
    """Moving the window sends only rows the view does not hold yet."""
    communicator = attached(recording_view, fruits)
    communicator.flush()
    assert communicator.confirm_update(1)

    recording_view.clear()
    communicator.request_range(2, 5, "")
    communicator.flush()

    assert recording_view.of("resize") == []
    assert recording_view.labels() == ["Date", "Elderberry"]
    assert recording_view.of("set_range")[0][1] == 5
    assert recording_view.calls[-1] == ("commit", 2, "")


def test_unchanged_window_sends_only_commit(recording_view, fruits):
    """Re-pushing an unchanged window produces an empty batch with a commit."""
    communicator = attached(recording_view, fruits)
    communicator.flush()

    recording_view.clear()
    communicator.refresh_all()
    communicator.flush()
    assert recording_view.calls == [("commit", 2, "")]


def test_label_change_resends_rows_with_same_keys(recording_view, fruits):
    """Relabeling resends the loaded rows; their keys stay the same."""
    communicator = attached(recording_view, fruits)
    communicator.flush()
    old_keys = [row["key"] for row in recording_view.of("set_range")[0][2]]

    recording_view.clear()
    communicator.set_label_generator(str.upper)
    communicator.flush()

    rows = recording_view.of("set_range")[0][2]
    assert [row["label"] for row in rows] == ["APPLE", "APRICOT", "BANANA", "BLUEBERRY", "CHERRY"]
    assert [row["key"] for row in rows] == old_keys
    assert recording_view.of("resize") == []


def test_server_side_filter_matches_labels(recording_view, fruits):
    """A filter above the threshold counts and fetches only matching items."""
    communicator = attached(recording_view, fruits, locale_name="en_US")
    communicator.flush()

    recording_view.clear()
    communicator.request_range(0, 5, "BERRY")
    communicator.flush()

    assert recording_view.of("resize") == [("resize", 2)]
    assert recording_view.labels() == ["Blueberry", "Elderberry"]
    assert recording_view.calls[-1] == ("commit", 2, "BERRY")


def test_client_side_filter_change_only_echoes(recording_view, fruits):
    """With client-side filtering a filter change needs no data, only the echo."""
    communicator = attached(recording_view, fruits, page_size=10)
    communicator.flush()
    assert recording_view.labels() == fruits

    recording_view.clear()
    communicator.request_range(0, 10, "ap")
    communicator.flush()
    assert recording_view.calls == [("commit", 2, "ap")]


def test_filter_text_reaches_callback_source(recording_view):
    """Callback sources receive the raw filter text."""
    from pyqt_multiselect.core import DataCommunicator

    items = [f"Item {i}" for i in range(120)]
    calls = []
    communicator = DataCommunicator()
    communicator.set_data_provider(paged_source(items, calls))
    communicator.attach(recording_view)

    communicator.request_range(0, 50, "abc")
    communicator.flush()
    assert calls == [("abc", 0, 50)]


def test_filter_converter_builds_source_filter(recording_view, fruits):
    """A filter converter turns the typed text into the source's own filter."""
    from pyqt_multiselect.core import BoundedItemSource, DataCommunicator

    communicator = DataCommunicator(page_size=5)
    communicator.set_data_provider(
        BoundedItemSource(fruits),
        filter_converter=lambda text: (lambda item: item.startswith(text)),
    )
    communicator.attach(recording_view)

    communicator.request_range(0, 5, "B")
    communicator.flush()
    assert recording_view.labels() == ["Banana", "Blueberry"]


def test_data_generators_add_fields(recording_view, fruits):
    """Data generators contribute fields; the key is always set last."""
    communicator = attached(recording_view, fruits)
    communicator.add_data_generator(lambda item, data: data.update(initial=item[0]))
    communicator.flush()

    row = recording_view.of("set_range")[0][2][0]
    assert row["initial"] == "A"
    assert list(row) == ["label", "initial", "key"]


def test_fetch_failure_sends_nothing(recording_view):
    """A failing source leaves the remote view untouched."""
    from pyqt_multiselect.core import CallbackItemSource, DataCommunicator, SourceFetchFailure

    def fetch(filter, offset, limit):
        raise TimeoutError("slow backend")

    communicator = DataCommunicator()
    communicator.set_data_provider(CallbackItemSource(fetch, lambda filter: 100))
    communicator.attach(recording_view)

    with pytest.raises(SourceFetchFailure):
        communicator.flush()
    assert recording_view.calls == []
    assert communicator.last_update_id == 0
    assert len(communicator.pending) == 0


def test_null_label_fails_the_batch(recording_view, fruits):
    """A label generator returning None aborts the batch before anything is sent."""
    from pyqt_multiselect.core import LabelGenerationFailure

    communicator = attached(recording_view, fruits, label_generator=lambda item: None)
    with pytest.raises(LabelGenerationFailure):
        communicator.flush()
    assert recording_view.calls == []
    assert len(communicator.registry) == 0


def test_none_item_has_empty_label():
    """Generating the label of None gives an empty string."""
    from pyqt_multiselect.core import DataCommunicator

    communicator = DataCommunicator(label_generator=lambda item: None)
    assert communicator.generate_label(None) == ""


def test_label_generator_can_not_be_none():
    """None is rejected as label generator."""
    from pyqt_multiselect.core import DataCommunicator, InvalidConfiguration

    communicator = DataCommunicator()
    with pytest.raises(InvalidConfiguration):
        communicator.set_label_generator(None)


def test_unknown_confirmation_is_ignored(recording_view, fruits):
    """Confirming an id that was never sent returns False."""
    communicator = attached(recording_view, fruits)
    communicator.flush()

    assert not communicator.confirm_update(99)
    assert communicator.confirm_update(1)
    assert not communicator.confirm_update(1)


def test_confirmation_for_abandoned_filter_is_not_authoritative(recording_view, fruits):
    """A batch produced for a filter the view has left is not taken as current state."""
    communicator = attached(recording_view, fruits)
    communicator.flush()
    assert communicator.confirm_update(1)

    communicator.request_range(0, 5, "ap")
    communicator.flush()
    communicator.set_filter("b")

    assert not communicator.confirm_update(2)
    assert communicator.last_confirmed_id == 1


def test_confirming_newer_batch_drops_older_ones(recording_view, fruits):
    """An authoritative confirmation supersedes every older outstanding batch."""
    communicator = attached(recording_view, fruits)
    communicator.flush()
    communicator.request_range(1, 5, "")
    communicator.flush()
    communicator.request_range(2, 5, "")
    communicator.flush()
    assert communicator.outstanding_update_ids == [1, 2, 3]

    assert communicator.confirm_update(3)
    assert communicator.outstanding_update_ids == []
    assert communicator.last_confirmed_id == 3


def test_update_ids_strictly_increase(recording_view, fruits):
    """Every batch carries a new, larger id."""
    communicator = attached(recording_view, fruits)
    for offset in range(4):
        communicator.request_range(offset, 5, "")
        communicator.flush()
    commits = [call[1] for call in recording_view.of("commit")]
    assert commits == [1, 2, 3, 4]


def test_keys_are_stable_across_scrolling(recording_view):
    """By default a key stays assigned after its row scrolled out of the window."""
    items = [f"Item {i}" for i in range(30)]
    communicator = attached(recording_view, items, page_size=10)
    communicator.flush()
    first_key = communicator.registry.key_if_registered("Item 0")
    communicator.confirm_update(1)
    communicator.request_range(10, 10, "")
    communicator.flush()
    communicator.confirm_update(2)

    assert len(communicator.registry) == 20
    assert communicator.registry.key("Item 0") == first_key

    recording_view.clear()
    communicator.request_range(0, 10, "")
    communicator.flush()
    assert recording_view.of("set_range") == []
    assert recording_view.calls == [("commit", 3, "")]


def test_keys_outside_window_are_passivated(recording_view):
    """With passivation enabled, keys the view no longer needs are released on confirmation."""
    items = [f"Item {i}" for i in range(30)]
    communicator = attached(recording_view, items, page_size=10, passivate_inactive_keys=True)
    communicator.flush()
    communicator.confirm_update(1)
    assert len(communicator.registry) == 10

    communicator.request_range(10, 10, "")
    communicator.flush()
    assert len(communicator.registry) == 20
    communicator.confirm_update(2)

    assert len(communicator.registry) == 10
    assert not communicator.registry.contains("Item 0")
    assert communicator.registry.contains("Item 15")


def test_passivation_follows_config(recording_view):
    """The configured default decides whether keys are released."""
    from pyqt_multiselect.protocols import MultiselectConfig, set_combo_config

    set_combo_config(MultiselectConfig(passivate_inactive_keys=True))
    items = [f"Item {i}" for i in range(30)]
    communicator = attached(recording_view, items, page_size=10)
    assert communicator.passivate_inactive_keys
    communicator.flush()
    communicator.confirm_update(1)
    communicator.request_range(10, 10, "")
    communicator.flush()
    communicator.confirm_update(2)

    assert len(communicator.registry) == 10


def test_pinned_keys_survive_passivation(recording_view):
    """Keys returned by the pinned-keys supplier are never released."""
    items = [f"Item {i}" for i in range(30)]
    communicator = attached(recording_view, items, page_size=10, passivate_inactive_keys=True)
    communicator.flush()
    communicator.confirm_update(1)
    pinned = communicator.registry.key_if_registered("Item 3")
    communicator.set_pinned_keys_supplier(lambda: [pinned])

    communicator.request_range(10, 10, "")
    communicator.flush()
    communicator.confirm_update(2)

    assert len(communicator.registry) == 11
    assert communicator.registry.get(pinned) == "Item 3"


def test_passivated_rows_are_resent_when_scrolled_back(recording_view):
    """With passivation enabled, released rows come back under new keys."""
    items = [f"Item {i}" for i in range(30)]
    communicator = attached(recording_view, items, page_size=10, passivate_inactive_keys=True)
    communicator.flush()
    first_key = communicator.registry.key_if_registered("Item 0")
    communicator.confirm_update(1)
    communicator.request_range(10, 10, "")
    communicator.flush()
    communicator.confirm_update(2)

    recording_view.clear()
    communicator.request_range(0, 10, "")
    communicator.flush()

    rows = recording_view.of("set_range")[0][2]
    assert rows[0]["label"] == "Item 0"
    assert rows[0]["key"] != first_key


def test_requests_are_coalesced(recording_view):
    """Any number of requests between two flushes cost one fetch."""
    from pyqt_multiselect.core import DataCommunicator

    items = [f"Item {i}" for i in range(200)]
    calls = []
    communicator = DataCommunicator()
    communicator.set_data_provider(paged_source(items, calls))
    communicator.attach(recording_view)

    communicator.request_range(0, 50, "")
    communicator.request_range(50, 50, "")
    communicator.request_range(100, 50, "")
    assert communicator.flush() == 1
    assert calls == [(None, 100, 50)]


def test_negative_requests_are_clamped(fruits):
    """Negative offsets and lengths become zero; None filter becomes empty."""
    from pyqt_multiselect.core import BoundedItemSource, DataCommunicator, PageWindow

    communicator = DataCommunicator(page_size=5)
    communicator.set_data_provider(BoundedItemSource(fruits))
    communicator.request_range(-5, -1, None)
    assert communicator.window == PageWindow(0, 0, "")


def test_window_past_the_end_is_clamped(recording_view, fruits):
    """A window beyond the data set sends only the size."""
    communicator = attached(recording_view, fruits)
    communicator.request_range(100, 5, "")
    communicator.flush()
    assert recording_view.of("set_range") == []
    assert recording_view.of("resize") == [("resize", 8)]


def test_flush_without_view_keeps_work_pending(fruits):
    """Nothing runs while no remote view is attached."""
    from pyqt_multiselect.core import BoundedItemSource, DataCommunicator

    communicator = DataCommunicator(page_size=5)
    communicator.set_data_provider(BoundedItemSource(fruits))
    assert communicator.flush() == 0
    assert communicator.pending.pending == ["push_window"]


def test_build_batch_requires_provider():
    """Building a batch without a data provider is a configuration error."""
    from pyqt_multiselect.core import DataCommunicator, InvalidConfiguration

    with pytest.raises(InvalidConfiguration):
        DataCommunicator().build_batch()


def test_provider_swap_invalidates_keys(recording_view, fruits):
    """A new data provider resets the registry and the window."""
    from pyqt_multiselect.core import BoundedItemSource, PageWindow

    communicator = attached(recording_view, fruits)
    communicator.request_range(0, 5, "b")
    communicator.flush()
    assert len(communicator.registry) > 0

    communicator.set_data_provider(BoundedItemSource(["Kiwi"]))
    assert len(communicator.registry) == 0
    assert communicator.window == PageWindow(0, 5, "")


def test_reattach_resends_everything(recording_view, fruits, recording_view_factory):
    """A newly attached view receives the size and all rows again."""

    communicator = attached(recording_view, fruits)
    communicator.flush()

    fresh = recording_view_factory()
    communicator.attach(fresh)
    communicator.flush()
    assert fresh.of("resize") == [("resize", 8)]
    assert len(fresh.labels()) == 5


def test_attach_none_is_rejected():
    """A None remote view is a configuration error."""
    from pyqt_multiselect.core import DataCommunicator, InvalidConfiguration

    with pytest.raises(InvalidConfiguration):
        DataCommunicator().attach(None)


@pytest.mark.parametrize("page_size", [0, -3, True, "10", 2.5])
def test_invalid_page_size_is_rejected(page_size):
    """Page sizes must be positive integers."""
    from pyqt_multiselect.core import DataCommunicator, InvalidConfiguration

    with pytest.raises(InvalidConfiguration):
        DataCommunicator(page_size=page_size)
    with pytest.raises(InvalidConfiguration):
        DataCommunicator().set_page_size(page_size)


def test_page_size_change_reevaluates_policy(recording_view, fruits):
    """Growing the page size past the item count switches to client-side filtering."""
    communicator = attached(recording_view, fruits)
    assert not communicator.client_side_filtering
    communicator.set_page_size(8)
    assert communicator.client_side_filtering


def test_failed_provider_count_keeps_previous_provider(recording_view, fruits):
    """A source that fails to count is not installed and nothing is reset."""
    from pyqt_multiselect.core import CallbackItemSource, SourceFetchFailure

    communicator = attached(recording_view, fruits)
    communicator.flush()
    old_source = communicator.source
    apple = communicator.registry.key_if_registered("Apple")

    def count(filter):
        raise OSError("backend down")

    with pytest.raises(SourceFetchFailure):
        communicator.set_data_provider(CallbackItemSource(lambda filter, offset, limit: [], count))

    assert communicator.source is old_source
    assert communicator.registry.get(apple) == "Apple"
    assert communicator.last_update_id == 1


def test_failed_batch_releases_keys_it_issued(recording_view, fruits):
    """Keys issued for rows of a batch that fails to build are released again."""
    from pyqt_multiselect.core import LabelGenerationFailure

    def label(fruit):
        return None if fruit == "Cherry" else fruit

    communicator = attached(recording_view, fruits, label_generator=label)
    with pytest.raises(LabelGenerationFailure):
        communicator.flush()

    assert len(communicator.registry) == 0
    assert recording_view.calls == []


def test_failed_batch_keeps_previously_issued_keys(recording_view, fruits):
    """Only keys issued by the failing build are released."""
    from pyqt_multiselect.core import LabelGenerationFailure

    communicator = attached(recording_view, fruits)
    communicator.flush()
    apple = communicator.registry.key_if_registered("Apple")

    communicator.set_label_generator(lambda fruit: None if fruit == "Fig" else fruit)
    communicator.request_range(3, 5, "")
    with pytest.raises(LabelGenerationFailure):
        communicator.flush()

    assert communicator.registry.get(apple) == "Apple"
    assert communicator.registry.contains("Blueberry")
    assert not communicator.registry.contains("Date")
    assert len(communicator.registry) == 5
