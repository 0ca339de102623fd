import pytest

from notes_website.backend.services import NoteStore


def titles(store: NoteStore, user_id: int = 1) -> list:
    return [note.title for note in store.list_notes(user_id)]


def test_list_empty(store: NoteStore) -> None:
    assert store.list_notes(1) == []
    store.create_collection(1)
    assert store.list_notes(1) == []


def test_add_keeps_insertion_order(store: NoteStore) -> None:
    assert store.add_note(1, "first", "a") == 0
    assert store.add_note(1, "second", "b") == 1
    assert store.add_note(1, "third", "c") == 2

    assert titles(store) == ["first", "second", "third"]


def test_add_empty_note_is_ignored(store: NoteStore) -> None:
    store.add_note(1, "kept", "")

    assert store.add_note(1, "", "") is None
    assert store.add_note(1, None, None) is None
    assert store.count(1) == 1


def test_whitespace_only_note_is_kept(store: NoteStore) -> None:
    assert store.add_note(1, " ", "") == 0
    assert store.add_note(1, "", "\n") == 1

    first, second = store.list_notes(1)
    assert first.title == " "
    assert second.title == "Untitled"
    assert second.content == "\n"


def test_add_without_title_is_untitled(store: NoteStore) -> None:
    store.add_note(1, "", "just content")
    store.add_note(1, "just title", "")

    first, second = store.list_notes(1)
    assert first.title == "Untitled"
    assert first.content == "just content"
    assert second.title == "just title"
    assert second.content == ""


def test_markup_is_escaped(store: NoteStore) -> None:
    store.add_note(1, "<script>alert(1)</script>", "a & b \"quoted\" 'single'")

    note = store.get_by_index(1, 0)
    assert note.title == "&lt;script&gt;alert(1)&lt;/script&gt;"
    assert note.content == "a &amp; b &quot;quoted&quot; &#x27;single&#x27;"


def test_plain_text_is_unchanged(store: NoteStore) -> None:
    store.add_note(1, "Grocery list", "eggs, milk: 2L (maybe)")

    note = store.get_by_index(1, 0)
    assert note.title == "Grocery list"
    assert note.content == "eggs, milk: 2L (maybe)"


def test_whitespace_is_preserved(store: NoteStore) -> None:
    store.add_note(1, "  code ", "    indented line\n\tand a tab\n")
    store.edit_by_index(1, 0, " edited", "  <i>still indented</i>\n")
    store.add_note(1, "code", "    indented line\n")

    edited, added = store.list_notes(1)
    assert edited.title == " edited"
    assert edited.content == "  &lt;i&gt;still indented&lt;/i&gt;\n"
    assert added.content == "    indented line\n"


def test_sanitizer_is_pluggable() -> None:
    store = NoteStore(sanitize=lambda text: (text or "").upper())
    store.add_note(1, "<b>", "x")

    assert store.get_by_index(1, 0).title == "<B>"


@pytest.mark.parametrize("index", [-1, 1, 5])
def test_get_out_of_bounds(store: NoteStore, index: int) -> None:
    store.add_note(1, "only", "")

    assert store.get_by_index(1, index) is None


def test_edit_at_returned_index(store: NoteStore) -> None:
    store.add_note(1, "before", "x")
    index = store.add_note(1, "target", "y")
    store.add_note(1, "after", "z")
    original = store.get_by_index(1, index)

    assert store.edit_by_index(1, index, "edited", "new content") is True

    notes = store.list_notes(1)
    assert [n.title for n in notes] == ["before", "edited", "after"]
    assert [n.title for n in notes].count("edited") == 1
    assert notes[index].content == "new content"
    assert notes[index].id == original.id
    assert notes[index].created_time == original.created_time


def test_edit_defaults(store: NoteStore) -> None:
    store.add_note(1, "title", "content")

    assert store.edit_by_index(1, 0, "", "") is True
    note = store.get_by_index(1, 0)
    assert note.title == "Untitled"
    assert note.content == ""


def test_edit_does_not_touch_snapshots(store: NoteStore) -> None:
    store.add_note(1, "title", "content")
    snapshot = store.list_notes(1)

    store.edit_by_index(1, 0, "changed", "")

    assert snapshot[0].title == "title"


@pytest.mark.parametrize("index", [-1, 3, 100])
def test_edit_out_of_bounds_is_noop(store: NoteStore, index: int) -> None:
    store.add_note(1, "a", "")
    store.add_note(1, "b", "")
    store.add_note(1, "c", "")

    assert store.edit_by_index(1, index, "x", "y") is False
    assert titles(store) == ["a", "b", "c"]


def test_delete_shifts_later_notes(store: NoteStore) -> None:
    for title in ["a", "b", "c", "d"]:
        store.add_note(1, title, "")
    before = store.list_notes(1)

    assert store.delete_by_index(1, 1) is True

    after = store.list_notes(1)
    assert len(after) == len(before) - 1
    assert after[0] is before[0]
    assert after[1:] == before[2:]
    assert before[1] not in after


@pytest.mark.parametrize("index", [-1, 2])
def test_delete_out_of_bounds_is_noop(store: NoteStore, index: int) -> None:
    store.add_note(1, "a", "")
    store.add_note(1, "b", "")

    assert store.delete_by_index(1, index) is False
    assert titles(store) == ["a", "b"]


def test_stale_index_targets_the_shifted_note(store: NoteStore) -> None:
    for title in ["a", "b", "c"]:
        store.add_note(1, title, "")

    # two deletes of index 1 computed before either ran
    store.delete_by_index(1, 1)
    store.delete_by_index(1, 1)

    assert titles(store) == ["a"]


def test_stable_id_survives_shifts(store: NoteStore) -> None:
    for title in ["a", "b", "c"]:
        store.add_note(1, title, "")
    c_id = store.get_by_index(1, 2).id

    store.delete_by_index(1, 0)

    assert store.get_by_id(1, c_id).title == "c"
    assert store.edit_by_id(1, c_id, "c2", "body") is True
    assert titles(store) == ["b", "c2"]
    assert store.delete_by_id(1, c_id) is True
    assert titles(store) == ["b"]
    assert store.get_by_id(1, c_id) is None
    assert store.edit_by_id(1, c_id, "x", "y") is False
    assert store.delete_by_id(1, c_id) is False


def test_collections_are_per_user(store: NoteStore) -> None:
    store.add_note(1, "mine", "")
    store.add_note(2, "theirs", "")
    theirs_id = store.get_by_index(2, 0).id

    assert titles(store, 1) == ["mine"]
    assert titles(store, 2) == ["theirs"]
    assert store.get_by_id(1, theirs_id) is None
    assert store.delete_by_id(1, theirs_id) is False
