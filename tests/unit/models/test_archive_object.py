"""Unit tests for the archive accumulator."""

from linkguard.models.archive import ArchiveObject


def test_mark_archived_reports_first_visit() -> None:
    archive_object = ArchiveObject()

    assert archive_object.mark_archived("user", "1") is True
    assert archive_object.mark_archived("user", "1") is False
    assert archive_object.is_archived("user", "1")
    assert not archive_object.is_archived("user", "2")
    assert archive_object.archive_count == 1


def test_patches_are_sets() -> None:
    archive_object = ArchiveObject()
    archive_object.add_patch("company", "1", "employees", "2")
    archive_object.add_patch("company", "1", "employees", "1")
    archive_object.add_patch("company", "1", "employees", "2")
    archive_object.add_patch("animal", "3", "owner", "2")

    assert archive_object.patch_count == 3
    assert list(archive_object.iter_patch()) == [
        ("animal", "3", "owner", ["2"]),
        ("company", "1", "employees", ["1", "2"]),
    ]


def test_to_dict_is_sorted() -> None:
    archive_object = ArchiveObject()
    archive_object.mark_archived("user", "2")
    archive_object.mark_archived("user", "1")
    archive_object.add_patch("tag", "1", "blogs", "1")

    assert archive_object.to_dict() == {
        "archive": {"user": ["1", "2"]},
        "patch": {"tag": {"1": {"blogs": ["1"]}}},
    }
    assert list(archive_object.iter_archive()) == [("user", "1"), ("user", "2")]
