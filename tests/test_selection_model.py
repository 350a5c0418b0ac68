"""Tests for SelectionModel."""


def make_model():
    from pyqt_multiselect.core import KeyRegistry, SelectionModel

    registry = KeyRegistry()
    return registry, SelectionModel(registry)


def test_set_value_keeps_order_and_deduplicates():
    """The value is returned in selection order without duplicates."""
    _, model = make_model()
    model.set_value(["Cherry", "Apple", "Cherry"])
    assert model.get_value() == ["Cherry", "Apple"]
    assert len(model) == 2


def test_set_value_none_clears():
    """None is the empty selection."""
    _, model = make_model()
    model.set_value(["Apple"])
    diff = model.set_value(None)
    assert model.get_value() == []
    assert len(diff.removed_keys) == 1


def test_set_value_is_idempotent():
    """Setting the same value twice changes nothing the second time."""
    registry, model = make_model()
    model.set_value(["Apple", "Banana"])
    keys = model.keys
    diff = model.set_value(["Apple", "Banana"])

    assert not diff.changed
    assert model.keys == keys
    assert len(registry) == 2


def test_update_selection_removed_wins():
    """A key both added and removed ends up deselected."""
    registry, model = make_model()
    apple, banana = registry.key("Apple"), registry.key("Banana")
    model.update_selection([apple, banana], [banana])
    assert model.get_value() == ["Apple"]


def test_update_selection_ignores_unknown_keys():
    """Keys the registry never issued are skipped."""
    registry, model = make_model()
    apple = registry.key("Apple")
    diff = model.update_selection([apple, "999"], [])
    assert diff.added_keys == (apple,)
    assert "999" not in model


def test_item_based_updates():
    """select and deselect work with items and register unseen ones."""
    registry, model = make_model()
    model.select("Apple", "Fig")
    assert model.is_selected("Fig")
    assert registry.contains("Fig")

    model.deselect("Apple", "Kiwi")
    assert model.get_value() == ["Fig"]
    assert not registry.contains("Kiwi")


def test_released_keys_are_dropped_from_value():
    """A selected key that no longer resolves is left out of the value."""
    registry, model = make_model()
    model.set_value(["Apple", "Banana"])
    registry.remove("Apple")
    assert model.get_value() == ["Banana"]


def test_unhashable_items_can_be_selected():
    """Items without hash support are selected by reference."""
    _, model = make_model()
    first, second = {"id": 1}, {"id": 1}
    model.set_value([first, second])
    value = model.get_value()
    assert len(value) == 2
    assert value[0] is first and value[1] is second


def test_diff_reports_added_and_removed():
    """The diff lists exactly the keys that changed."""
    registry, model = make_model()
    model.set_value(["Apple", "Banana"])
    diff = model.set_value(["Banana", "Cherry"])
    assert diff.added_keys == (registry.key("Cherry"),)
    assert diff.removed_keys == (registry.key("Apple"),)
    assert diff.changed
