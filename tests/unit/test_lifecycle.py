"""Tests for project lifecycle transitions that need no database."""

from datetime import UTC, datetime

import pytest

from tests.fixtures.assets import FakeAssetStore, image
from yarnlog.core import lifecycle
from yarnlog.core.row_trackers import SetCurrentRow, SetSection
from yarnlog.errors import ProjectFinished, TrackerIndexError, ValidationFailed
from yarnlog.models import Project, ProjectState
from yarnlog.schemas import ProjectUpdate


def make_project(**fields) -> Project:
    fields.setdefault("id", 1)
    fields.setdefault("user_id", 1)
    fields.setdefault("name", "Cardigan")
    fields.setdefault("notes", "original notes")
    fields.setdefault("started_at", datetime(2024, 1, 1, tzinfo=UTC))
    fields.setdefault("finished_at", None)
    fields.setdefault("row_trackers", [{"section": "Body", "currentRow": 10, "totalRows": 80}])
    fields.setdefault("files", [])
    fields.setdefault("tags", [])
    fields.setdefault("version", 1)
    return Project(**fields)


def finish_body(**fields) -> ProjectUpdate:
    fields.setdefault("name", "Cardigan")
    fields.setdefault("finishedAt", "2024-02-01T00:00:00Z")
    return ProjectUpdate.model_validate(fields)


class TestState:
    def test_in_progress_until_finished(self):
        project = make_project()
        assert lifecycle.state_of(project) is ProjectState.IN_PROGRESS
        assert lifecycle.is_editable(project)

    def test_finished(self):
        project = make_project(finished_at=datetime(2024, 2, 1, tzinfo=UTC))
        assert lifecycle.state_of(project) is ProjectState.FINISHED
        assert not lifecycle.is_editable(project)


class TestFinishProject:
    @pytest.mark.asyncio
    async def test_delete_existing_images(self):
        project = make_project(files=[image("a", 400), image("b", 600)])
        store = FakeAssetStore()

        result = await lifecycle.finish_project(
            project, finish_body(deleteExistingImages=True, images=[image("c")]), store
        )

        assert result.warnings == []
        assert result.freed_bytes == 1000  # noqa: PLR2004
        assert store.destroyed == ["a", "b"]
        assert [f["publicId"] for f in project.files] == ["c"]
        assert project.finished_at == datetime(2024, 2, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_only_previous_files_are_destroyed(self):
        project = make_project(files=[image("old"), image("added")])
        store = FakeAssetStore()

        result = await lifecycle.finish_project(
            project,
            finish_body(deleteExistingImages=True),
            store,
            previous_files=[image("old")],
        )

        assert store.destroyed == ["old"]
        assert result.freed_bytes == 1000  # noqa: PLR2004
        assert [f["publicId"] for f in project.files] == ["added"]

    @pytest.mark.asyncio
    async def test_storage_failure_is_a_warning(self):
        project = make_project(files=[image("a"), image("b")])
        store = FakeAssetStore(failing={"a"})

        result = await lifecycle.finish_project(
            project, finish_body(deleteExistingImages=True), store
        )

        assert [w.public_id for w in result.warnings] == ["a"]
        assert store.calls == ["a", "b"]
        assert result.freed_bytes == 1000  # noqa: PLR2004
        assert project.files == []
        assert project.state is ProjectState.FINISHED

    @pytest.mark.asyncio
    async def test_unexpected_storage_error_is_a_warning(self):
        project = make_project(files=[image("a")])
        store = FakeAssetStore(crashing={"a"})

        result = await lifecycle.finish_project(
            project, finish_body(deleteExistingImages=True), store
        )

        assert result.warnings[0].message == "asset storage request failed"
        assert project.state is ProjectState.FINISHED

    @pytest.mark.asyncio
    async def test_keep_existing_images_appends(self):
        project = make_project(files=[image("a")])
        store = FakeAssetStore()

        await lifecycle.finish_project(project, finish_body(images=[image("b")]), store)

        assert [f["publicId"] for f in project.files] == ["a", "b"]
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_detach_existing_images(self):
        project = make_project(files=[image("a")])
        store = FakeAssetStore()

        await lifecycle.finish_project(
            project, finish_body(keepExistingImages=False, images=[image("b")]), store
        )

        assert [f["publicId"] for f in project.files] == ["b"]
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_blank_notes_keep_existing(self):
        project = make_project()
        await lifecycle.finish_project(project, finish_body(notes="   "), FakeAssetStore())
        assert project.notes == "original notes"

    @pytest.mark.asyncio
    async def test_notes_replaced(self):
        project = make_project()
        await lifecycle.finish_project(project, finish_body(notes=" Blocked. "), FakeAssetStore())
        assert project.notes == "Blocked."

    @pytest.mark.asyncio
    async def test_null_finished_at_means_now(self):
        project = make_project()
        before = datetime.now(UTC)
        await lifecycle.finish_project(project, finish_body(finishedAt=None), FakeAssetStore())
        assert project.finished_at >= before

    @pytest.mark.asyncio
    async def test_finish_before_start_is_allowed(self):
        project = make_project(started_at=datetime(2024, 3, 1, tzinfo=UTC))
        await lifecycle.finish_project(project, finish_body(), FakeAssetStore())
        assert project.finished_at == datetime(2024, 2, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_name_is_required(self):
        project = make_project()
        body = ProjectUpdate.model_validate({"finishedAt": "2024-02-01"})

        with pytest.raises(ValidationFailed) as exc_info:
            await lifecycle.finish_project(project, body, FakeAssetStore())

        assert exc_info.value.field == "name"
        assert project.finished_at is None

    @pytest.mark.asyncio
    async def test_cannot_finish_twice(self):
        project = make_project(finished_at=datetime(2024, 2, 1, tzinfo=UTC))
        with pytest.raises(ProjectFinished):
            await lifecycle.finish_project(project, finish_body(), FakeAssetStore())


class TestReleaseAssets:
    @pytest.mark.asyncio
    async def test_entries_without_public_id_are_skipped(self):
        store = FakeAssetStore()
        warnings, freed = await lifecycle.release_assets([{"url": "x"}, image("a", None)], store)
        assert warnings == []
        assert freed == 0
        assert store.calls == ["a"]

    @pytest.mark.asyncio
    async def test_result_other_than_ok_is_a_warning(self):
        class RefusingStore:
            async def destroy(self, public_id):
                return {"result": "not found"}

        warnings, freed = await lifecycle.release_assets([image("a")], RefusingStore())
        assert [w.public_id for w in warnings] == ["a"]
        assert freed == 0


class TestTrackerOperations:
    def test_add_and_remove_bump_version(self):
        project = make_project()
        lifecycle.add_project_tracker(project)
        assert len(project.row_trackers) == 2  # noqa: PLR2004
        lifecycle.remove_project_tracker(project, 0)
        assert project.row_trackers == [{"section": "", "currentRow": 0, "totalRows": 0}]
        assert project.version == 3  # noqa: PLR2004

    def test_update_current_row(self):
        project = make_project()
        lifecycle.update_project_tracker(project, 0, SetCurrentRow.parse("42"))
        assert project.row_trackers[0]["currentRow"] == 42  # noqa: PLR2004

    def test_out_of_range(self):
        with pytest.raises(TrackerIndexError):
            lifecycle.update_project_tracker(make_project(), 5, SetSection("x"))

    def test_finished_project_freezes_counters(self):
        project = make_project(finished_at=datetime(2024, 2, 1, tzinfo=UTC))
        with pytest.raises(ProjectFinished):
            lifecycle.update_project_tracker(project, 0, SetCurrentRow(11))
        with pytest.raises(ProjectFinished):
            lifecycle.add_project_tracker(project)
        with pytest.raises(ProjectFinished):
            lifecycle.remove_project_tracker(project, 0)
        assert project.row_trackers[0]["currentRow"] == 10  # noqa: PLR2004

    def test_finished_project_allows_rename(self):
        project = make_project(finished_at=datetime(2024, 2, 1, tzinfo=UTC))
        lifecycle.update_project_tracker(project, 0, SetSection("Yoke"))
        assert project.row_trackers[0]["section"] == "Yoke"

    @pytest.mark.asyncio
    async def test_blank_stored_tracker_does_not_block_rename(self):
        project = make_project(
            finished_at=datetime(2024, 2, 1, tzinfo=UTC),
            row_trackers=[
                {"section": "Body", "currentRow": 80, "totalRows": 80},
                {"section": "", "currentRow": 0, "totalRows": 0},
            ],
        )
        changes = ProjectUpdate.model_validate(
            {"rowTrackers": [{"section": "Front", "currentRow": 80, "totalRows": 80}]}
        )

        await lifecycle.edit_project(None, None, project, changes)

        assert project.row_trackers == [{"section": "Front", "currentRow": 80, "totalRows": 80}]
