"""Tests for notion_export.export_engine."""

from dataclasses import replace

import pytest
from pytest_mock import MockerFixture

from notion_export.exceptions import EmptyResultError, RemoteError
from notion_export.export_engine import ExportEngine
from notion_export.notion_api import NotionAPI, NotionBlock, NotionPage
from tests.helpers import DATABASE_ID, PARENT_ID, child_page, paragraph


def page(page_id: str, title: str) -> NotionPage:
    return NotionPage.from_child_page_block(child_page(page_id, title))


def blocks_for(text: str) -> list[NotionBlock]:
    return [NotionBlock.from_api_response(paragraph(text))] if text else []


@pytest.fixture
def notion_api(mocker: MockerFixture) -> NotionAPI:
    api = mocker.Mock(spec=NotionAPI)
    api.request_count = 0
    api.get_block.return_value = {"type": "child_page"}
    return api


def make_engine(config, notion_api, fixed_now, pages: dict) -> ExportEngine:
    """Wire ``pages`` (title -> body text) into the mocked API."""
    listed = [page(f"p{i}", title) for i, title in enumerate(pages)]
    bodies = {p.id: text for p, text in zip(listed, pages.values())}

    notion_api.get_child_pages.return_value = listed
    notion_api.query_database.return_value = listed
    notion_api.get_page_blocks.side_effect = lambda page_id: blocks_for(bodies[page_id])

    return ExportEngine(config, notion_api=notion_api, clock=lambda: fixed_now)


class TestRun:
    def test_exports_pages_with_front_matter(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {
            "Hello, World!": "First sentence. Second sentence.",
            "": "",
        })

        report = engine.run()

        output = config.output_dir
        assert sorted(p.name for p in output.iterdir()) == ["hello-world.md", "untitled-page.md"]
        assert (output / "hello-world.md").read_text(encoding="utf-8") == (
            "---\n"
            'title: "Hello, World!"\n'
            'date: "2024-01-01T12:00:00.000Z"\n'
            "draft: false\n"
            'description: "First sentence."\n'
            "---\n"
            "\n"
            "First sentence. Second sentence.\n"
        )
        assert (output / "untitled-page.md").read_text(encoding="utf-8") == (
            "---\n"
            'title: "Untitled Page"\n'
            'date: "2024-01-01T12:00:00.000Z"\n'
            "draft: false\n"
            "---\n"
        )

        assert report.success
        assert len(report.written) == 2
        assert len(report.warnings) == 1
        assert "no content" in report.results[1].warnings[0]

    def test_clears_stale_files(self, config, notion_api, fixed_now):
        config.output_dir.mkdir(parents=True)
        (config.output_dir / "stale.md").write_text("old")

        engine = make_engine(config, notion_api, fixed_now, {"Fresh": "New post."})
        report = engine.run()

        assert [p.name for p in config.output_dir.iterdir()] == ["fresh.md"]
        assert [p.name for p in report.removed_files] == ["stale.md"]

    def test_ghost_front_matter_is_not_duplicated(self, config, notion_api, fixed_now):
        body = "```\n---\ntitle: Old\n---\nActual content here.\n```"
        engine = make_engine(config, notion_api, fixed_now, {"Post": ""})
        engine.markdown_converter.convert = lambda blocks: body

        engine.run()

        content = (config.output_dir / "post.md").read_text(encoding="utf-8")
        assert content.count("---\n") == 2
        assert "title: Old" not in content
        assert content.endswith("---\n\nActual content here.\n")

    def test_pages_written_in_source_order(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {"B": "b.", "A": "a.", "C": "c."})

        report = engine.run()

        assert [r.path.name for r in report.results] == ["b.md", "a.md", "c.md"]

    def test_verifies_parent_page_before_listing(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})

        engine.run()

        notion_api.get_block.assert_called_once_with(PARENT_ID)
        notion_api.get_child_pages.assert_called_once_with(PARENT_ID)
        notion_api.query_database.assert_not_called()

    def test_database_mode(self, config, notion_api, fixed_now):
        config = replace(config, parent_page_id=None, database_id=DATABASE_ID)
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})

        engine.run()

        notion_api.query_database.assert_called_once_with(
            DATABASE_ID,
            status_property="Status",
            published_value="Published",
            status_type="select",
            title_property="Name",
        )
        notion_api.get_child_pages.assert_not_called()


class TestFailures:
    def test_zero_pages_is_an_error(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {})

        with pytest.raises(EmptyResultError):
            engine.run()

        assert not config.output_dir.exists()

    def test_listing_error_leaves_directory_untouched(self, config, notion_api, fixed_now):
        config.output_dir.mkdir(parents=True)
        (config.output_dir / "keep.md").write_text("old")
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})
        notion_api.get_child_pages.side_effect = RemoteError("unauthorized")

        with pytest.raises(RemoteError):
            engine.run()

        assert [p.name for p in config.output_dir.iterdir()] == ["keep.md"]

    def test_one_page_failure_does_not_stop_the_run(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {"Good": "Fine.", "Bad": "x", "Also good": "Ok."})

        def get_blocks(page_id):
            if page_id == "p1":
                raise RemoteError("Fetching blocks failed for p1")
            return blocks_for("Text.")

        notion_api.get_page_blocks.side_effect = get_blocks

        report = engine.run()

        assert not report.success
        assert [r.status for r in report.results] == ["written", "failed", "written"]
        assert "Fetching blocks failed" in report.failed[0].error
        assert sorted(p.name for p in config.output_dir.iterdir()) == ["also-good.md", "good.md"]

    def test_failed_page_does_not_reserve_its_slug(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {"Hello!": "one.", "hello": "two."})

        def get_blocks(page_id):
            if page_id == "p0":
                raise RemoteError("Fetching blocks failed for p0")
            return blocks_for("two.")

        notion_api.get_page_blocks.side_effect = get_blocks

        report = engine.run()

        assert [r.status for r in report.results] == ["failed", "written"]
        assert [p.name for p in config.output_dir.iterdir()] == ["hello.md"]
        assert report.warnings == []


class TestOptions:
    def test_dry_run_writes_nothing(self, config, notion_api, fixed_now):
        config.output_dir.mkdir(parents=True)
        (config.output_dir / "stale.md").write_text("old")
        config = replace(config, dry_run=True)
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})

        report = engine.run()

        assert [p.name for p in config.output_dir.iterdir()] == ["stale.md"]
        assert [r.status for r in report.results] == ["skipped"]
        assert report.success

    def test_created_date_source(self, config, notion_api, fixed_now):
        config = replace(config, date_source="created")
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})

        engine.run()

        content = (config.output_dir / "a.md").read_text(encoding="utf-8")
        assert 'date: "2023-05-01T08:30:00.000Z"' in content

    def test_created_date_source_falls_back_to_now(self, config, notion_api, fixed_now):
        config = replace(config, date_source="created")
        engine = make_engine(config, notion_api, fixed_now, {"A": "a."})
        notion_api.get_child_pages.return_value[0].created_time = None

        engine.run()

        content = (config.output_dir / "a.md").read_text(encoding="utf-8")
        assert 'date: "2024-01-01T12:00:00.000Z"' in content

    def test_suffix_collision_policy(self, config, notion_api, fixed_now):
        engine = make_engine(config, notion_api, fixed_now, {"Hello!": "one.", "hello": "two."})

        report = engine.run()

        assert sorted(p.name for p in config.output_dir.iterdir()) == ["hello-2.md", "hello.md"]
        assert len(report.warnings) == 1

    def test_overwrite_collision_policy(self, config, notion_api, fixed_now):
        config = replace(config, slug_collision="overwrite")
        engine = make_engine(config, notion_api, fixed_now, {"Hello!": "one.", "hello": "two."})

        engine.run()

        assert [p.name for p in config.output_dir.iterdir()] == ["hello.md"]
        assert "two." in (config.output_dir / "hello.md").read_text(encoding="utf-8")

    def test_error_collision_policy_fails_page(self, config, notion_api, fixed_now):
        config = replace(config, slug_collision="error")
        engine = make_engine(config, notion_api, fixed_now, {"Hello!": "one.", "hello": "two."})

        report = engine.run()

        assert [r.status for r in report.results] == ["written", "failed"]
        assert not report.success
