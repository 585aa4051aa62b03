"""Tests for the end-to-end changelog generation pipeline."""

import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from git import Actor, Repo

from core.config import ChangelogConfig
from core.errors import ChangelogIOError
from core.generator import ChangelogGenerator, assign_versions, latest_version, read_changelog_file
from core.history import GitHistoryProvider
from core.models import CommitEntry, CommitType, HistoryCommit, SectionData, SemanticVersion
from core.parser import parse_changelog
from core.renderer import format_entry

URL = "https://github.com/acme/widget"
TODAY = "2024-05-01"


def v(major, minor, patch):
    return SemanticVersion(major=major, minor=minor, patch=patch)


class GitRepoTestCase(unittest.TestCase):
    """Runs the generator against a real throwaway repository."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.repo = Repo.init(self.temp_dir)
        self.actor = Actor("Jane Doe", "jane@example.com")
        self.output = os.path.join(self.temp_dir, "CHANGELOG.md")

    def tearDown(self):
        self.repo.close()
        shutil.rmtree(self.temp_dir)

    def commit_file(self, relpath, message):
        path = os.path.join(self.temp_dir, relpath)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'a') as f:
            f.write(message + "\n")
        self.repo.index.add([relpath])
        return self.repo.index.commit(message, author=self.actor, committer=self.actor)

    def entry_for(self, commit):
        return format_entry(
            CommitEntry(
                summary=commit.summary,
                short_hash=commit.hexsha[:7],
                full_hash=commit.hexsha,
                author_name="Jane Doe",
            ),
            URL,
        )

    def generator(self, date=TODAY, **overrides):
        data = {"repo": self.temp_dir, "output": self.output, "url": URL}
        data.update(overrides)
        return ChangelogGenerator(ChangelogConfig(**data), clock=lambda: date)

    def read_output(self):
        with open(self.output, 'r', encoding='utf-8') as f:
            return f.read()


class TestFirstRelease(GitRepoTestCase):

    def test_first_release_uses_seed(self):
        feat = self.commit_file("a.txt", "feat: a")
        fix = self.commit_file("b.txt", "fix: b")
        open(self.output, 'w').close()

        result = self.generator().generate()
        text = self.read_output()

        self.assertTrue(text.startswith("# Changelog\n\n"))
        self.assertEqual(text.count("## "), 1)
        self.assertIn(f"## All Changes@v0.1.0 — {TODAY}\n", text)
        self.assertIn(f"### Feat\n\n- {self.entry_for(feat)}\n", text)
        self.assertIn(f"### Fix\n\n- {self.entry_for(fix)}\n", text)
        self.assertLess(text.index("### Feat"), text.index("### Fix"))

        self.assertEqual(result.new_sections, ["All Changes@v0.1.0"])
        self.assertEqual(result.new_entry_count, 2)
        self.assertFalse(result.backfilled)

    def test_missing_output_file_is_created(self):
        self.commit_file("a.txt", "feat: a")
        self.generator().generate()
        self.assertTrue(os.path.exists(self.output))

    def test_seed_from_tags(self):
        self.commit_file("a.txt", "feat: a")
        self.repo.create_tag("v1.2.0")
        self.repo.create_tag("nonsense")
        self.commit_file("b.txt", "fix: b")
        self.repo.create_tag("v1.3.5")

        result = self.generator().generate()

        self.assertEqual(result.seed_version, "v1.3.5")
        self.assertEqual(result.new_sections, ["All Changes@v1.3.5"])

    def test_uncategorized_commits_dropped(self):
        self.commit_file("a.txt", "Initial commit")
        self.commit_file("b.txt", "chore: tidy")
        self.commit_file("c.txt", "fix: real")

        self.generator().generate()
        text = self.read_output()

        self.assertNotIn("Initial commit", text)
        self.assertNotIn("chore: tidy", text)
        self.assertIn("fix: real", text)

    def test_no_commits_writes_header_only(self):
        result = self.generator().generate()
        self.assertEqual(self.read_output(), "# Changelog\n\n")
        self.assertEqual(result.new_sections, [])


class TestIncrementalRuns(GitRepoTestCase):

    def test_second_run_adds_nothing(self):
        self.commit_file("a.txt", "feat: a")
        self.commit_file("b.txt", "fix: b")
        self.generator().generate()
        first = self.read_output()

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(self.read_output(), first)
        self.assertEqual(result.new_entry_count, 0)

    def test_new_feature_bumps_minor_on_top(self):
        old = self.commit_file("a.txt", "fix: a")
        self.generator().generate()
        new = self.commit_file("b.txt", "feat: b")

        self.generator(date="2024-05-02").generate()
        text = self.read_output()
        sections = parse_changelog(text)

        self.assertEqual(
            [s.display_name for s in sections],
            ["All Changes@v0.2.0", "All Changes@v0.1.0"],
        )
        self.assertEqual(sections[0].date, "2024-05-02")
        self.assertEqual(sections[0].entries.all_entries(), {self.entry_for(new)})
        self.assertEqual(sections[1].entries.all_entries(), {self.entry_for(old)})
        self.assertEqual(text.count("# Changelog"), 1)

    def test_breaking_change_bumps_major(self):
        self.commit_file("a.txt", "feat: a")
        self.generator().generate()
        self.commit_file("b.txt", "feat(api)!: remove v1 endpoints")

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(result.new_sections, ["All Changes@v1.0.0"])

    def test_old_breaking_entry_does_not_bump_again(self):
        self.commit_file("a.txt", "feat!: a")
        self.generator().generate()
        self.commit_file("b.txt", "fix: b")

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(result.new_sections, ["All Changes@v0.1.1"])

    def test_docs_only_still_advances(self):
        self.commit_file("a.txt", "feat: a")
        self.generator().generate()
        self.commit_file("README.md", "docs: readme")

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(result.new_sections, ["All Changes@v0.1.1"])

    def test_bang_colon_later_in_summary_is_not_breaking(self):
        self.commit_file("a.txt", "feat: a")
        self.generator().generate()
        self.commit_file("b.txt", "fix: reject 'x!: y' style input")

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(result.new_sections, ["All Changes@v0.1.1"])

    def test_carriage_return_in_summary_is_stable(self):
        commit = self.commit_file("a.txt", "feat: a\r\n\r\nbody")
        self.generator().generate()

        result = self.generator(date="2024-05-02").generate()
        with open(self.output, 'r', encoding='utf-8', newline='') as f:
            text = f.read()

        self.assertEqual(result.new_entry_count, 0)
        self.assertNotIn("\r", text)
        self.assertIn(f"- feat: a by Jane Doe in [#{commit.hexsha[:7]}]({URL}/commit/{commit.hexsha})\n", text)

    def test_header_spacing_is_stable(self):
        self.commit_file("a.txt", "feat: a")
        self.generator().generate()
        self.commit_file("b.txt", "feat: b")
        self.generator(date="2024-05-02").generate()

        self.assertTrue(self.read_output().startswith("# Changelog\n\n## All Changes@v0.2.0"))


class TestLegacyBackfill(GitRepoTestCase):

    def test_legacy_sections_get_seed_version(self):
        old = self.commit_file("a.txt", "fix: a")
        self.repo.create_tag("v1.2.0")
        with open(self.output, 'w', encoding='utf-8') as f:
            f.write(
                "# Changelog\n\n"
                "## All Changes — 2023-01-01\n\n"
                "### Fix\n\n"
                f"- {self.entry_for(old)}\n\n"
            )
        new = self.commit_file("b.txt", "feat: b")

        result = self.generator().generate()
        sections = parse_changelog(self.read_output())

        self.assertTrue(result.backfilled)
        self.assertEqual(
            [s.display_name for s in sections],
            ["All Changes@v1.3.0", "All Changes@v1.2.0"],
        )
        self.assertEqual(sections[1].date, "2023-01-01")
        self.assertEqual(sections[0].entries.all_entries(), {self.entry_for(new)})

    def test_entries_without_author_are_not_readded(self):
        """Entries written by the older author-less format still deduplicate."""
        old = self.commit_file("a.txt", "fix: a")
        with open(self.output, 'w', encoding='utf-8') as f:
            f.write(
                "# Changelog\n\n"
                "## All Changes@v0.1.0 — 2023-01-01\n\n"
                "### Fix\n\n"
                f"- fix: a ([#{old.hexsha[:7]}]({URL}/commit/{old.hexsha}))\n\n"
            )

        result = self.generator().generate()

        self.assertEqual(result.new_entry_count, 0)


class TestFollowPaths(GitRepoTestCase):

    def test_one_section_per_path(self):
        app = self.commit_file("src/app.py", "feat: app")
        docs = self.commit_file("docs/index.md", "docs: index")

        result = self.generator(follow=["src", "docs"]).generate()
        sections = parse_changelog(self.read_output())

        self.assertEqual(result.new_sections, ["docs@v0.1.1", "src@v0.1.0"])
        self.assertEqual([s.display_name for s in sections], ["docs@v0.1.1", "src@v0.1.0"])
        self.assertEqual(sections[0].entries.all_entries(), {self.entry_for(docs)})
        self.assertEqual(sections[1].entries.all_entries(), {self.entry_for(app)})

    def test_dedup_is_global_across_sections(self):
        self.commit_file("src/app.py", "feat: app")
        self.generator(follow=["src"]).generate()

        result = self.generator(date="2024-05-02").generate()

        self.assertEqual(result.new_entry_count, 0)


class TestDryRunAndErrors(GitRepoTestCase):

    def test_dry_run_does_not_write(self):
        self.commit_file("a.txt", "feat: a")

        result = self.generator().generate(dry_run=True)

        self.assertFalse(os.path.exists(self.output))
        self.assertIn("## All Changes@v0.1.0", result.content)

    def test_unwritable_output(self):
        self.commit_file("a.txt", "feat: a")
        missing_dir = os.path.join(self.temp_dir, "no", "such", "dir", "CHANGELOG.md")

        with self.assertRaises(ChangelogIOError):
            self.generator(output=missing_dir).generate()

    def test_url_from_origin_remote(self):
        self.repo.create_remote("origin", "git@github.com:acme/widget.git")
        self.commit_file("a.txt", "feat: a")

        self.generator(url=None).generate()

        self.assertIn("](https://github.com/acme/widget/commit/", self.read_output())


class TestWithMockHistory(unittest.TestCase):
    """Pipeline behaviour with a stubbed history provider."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.output = os.path.join(self.temp_dir, "CHANGELOG.md")
        self.history = MagicMock(spec=GitHistoryProvider)
        self.history.tag_names.return_value = []

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def make_generator(self, **overrides):
        data = {"output": self.output, "url": URL}
        data.update(overrides)
        return ChangelogGenerator(ChangelogConfig(**data), history=self.history, clock=lambda: TODAY)

    def test_collect_section(self):
        self.history.iter_commits.return_value = [
            HistoryCommit(summary="fix(core)!: x", short_id="1111111", full_id="1" * 40, author_name="A"),
            HistoryCommit(summary="wip", short_id="2222222", full_id="2" * 40, author_name="A"),
        ]

        section = self.make_generator().collect_section()

        self.assertEqual(section.categories(), {CommitType.FIX})
        self.assertTrue(section.has_breaking_change)
        self.history.iter_commits.assert_called_once_with(None)

    def test_follow_path_passed_to_history(self):
        self.history.iter_commits.return_value = [
            HistoryCommit(summary="feat: a", short_id="1111111", full_id="1" * 40, author_name="A"),
        ]

        section = self.make_generator().collect_section("lib")

        self.history.iter_commits.assert_called_once_with("lib")
        self.assertEqual(section.entry_count(), 1)

    def test_breaking_recorded_from_summary_only(self):
        self.history.iter_commits.return_value = [
            HistoryCommit(summary="fix: reject 'x!: y'", short_id="1111111", full_id="1" * 40, author_name="A"),
            HistoryCommit(summary="feat!: drop v1", short_id="2222222", full_id="2" * 40, author_name="A"),
        ]

        section = self.make_generator().collect_section()

        self.assertEqual(len(section.breaking), 1)
        self.assertTrue(next(iter(section.breaking)).startswith("feat!: drop v1 by A"))

    def test_collect_current_default_section_name(self):
        self.history.iter_commits.return_value = []
        sections = self.make_generator(section_name="Everything").collect_current()
        self.assertEqual([name for name, _ in sections], ["Everything"])

    def test_collect_failure_writes_nothing(self):
        self.history.iter_commits.side_effect = RuntimeError("boom")
        with self.assertRaises(RuntimeError):
            self.make_generator().generate()
        self.assertFalse(os.path.exists(self.output))


class TestAssignVersions(unittest.TestCase):

    def section(self, *types, breaking=False):
        data = SectionData(has_breaking_change=breaking)
        for commit_type in types:
            data.add(commit_type, f"{commit_type.prefix}: x")
        return data

    def test_first_section_takes_seed(self):
        result = assign_versions([("a", self.section(CommitType.FEAT))], None, v(0, 1, 0))
        self.assertEqual(result[0][2], v(0, 1, 0))

    def test_bumps_from_base(self):
        result = assign_versions([("a", self.section(CommitType.FIX))], v(1, 2, 3), v(0, 1, 0))
        self.assertEqual(result[0][2], v(1, 2, 4))

    def test_strictly_increasing(self):
        sections = [
            ("a", self.section(CommitType.DOCS)),
            ("b", self.section(CommitType.FEAT)),
            ("c", self.section(CommitType.FIX, breaking=True)),
        ]
        versions = [version for _, _, version in assign_versions(sections, v(1, 0, 0), v(0, 1, 0))]
        self.assertEqual(versions, [v(1, 0, 1), v(1, 1, 0), v(2, 0, 0)])


class TestHelpers(unittest.TestCase):

    def test_latest_version(self):
        sections = parse_changelog(
            "## a@v0.2.0 — 2024-01-02\n## b — 2024-01-01\n## c@v0.10.0 — 2023-01-01\n"
        )
        self.assertEqual(latest_version(sections), v(0, 10, 0))
        self.assertIsNone(latest_version([]))

    def test_read_missing_changelog(self):
        self.assertEqual(read_changelog_file("/nonexistent/CHANGELOG.md"), "")


if __name__ == "__main__":
    unittest.main()
