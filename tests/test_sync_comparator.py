"""Tests for fingerprint comparison and upload strategies."""

import pytest

from zipdeploy.digest import ABSENT
from zipdeploy.sync import (
    DriftStatus,
    FingerprintComparator,
    UploadAction,
    UploadStrategy,
)


class TestUploadStrategy:
    """Tests for UploadStrategy."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("force-all", UploadStrategy.FORCE_ALL),
            ("FORCE_ALL", UploadStrategy.FORCE_ALL),
            ("forceAll", UploadStrategy.FORCE_ALL),
            ("fa", UploadStrategy.FORCE_ALL),
            ("skip-unchanged", UploadStrategy.SKIP_UNCHANGED),
            ("skip_unchanged", UploadStrategy.SKIP_UNCHANGED),
            ("skipUnchanged", UploadStrategy.SKIP_UNCHANGED),
            (" su ", UploadStrategy.SKIP_UNCHANGED),
        ],
    )
    def test_from_string(self, value, expected):
        assert UploadStrategy.from_string(value) == expected

    def test_from_string_invalid(self):
        with pytest.raises(ValueError, match="Invalid upload strategy"):
            UploadStrategy.from_string("mirror")

    def test_requires_target_scan(self):
        assert not UploadStrategy.FORCE_ALL.requires_target_scan
        assert UploadStrategy.SKIP_UNCHANGED.requires_target_scan


class TestCompareUploads:
    """Tests for upload decisions."""

    def test_force_all_uploads_everything(self):
        comparator = FingerprintComparator(UploadStrategy.FORCE_ALL)
        decisions = comparator.compare_uploads(
            {"b.txt": "2", "a.txt": "1"}, {"a.txt": "1"}
        )
        assert [d.name for d in decisions] == ["a.txt", "b.txt"]
        assert all(d.action == UploadAction.UPLOAD for d in decisions)

    def test_force_all_without_target(self):
        decisions = FingerprintComparator().compare_uploads({"a.txt": "1"})
        assert decisions[0].action == UploadAction.UPLOAD
        assert decisions[0].target_fingerprint is None

    def test_skip_unchanged_requires_target(self):
        comparator = FingerprintComparator(UploadStrategy.SKIP_UNCHANGED)
        with pytest.raises(ValueError, match="requires target"):
            comparator.compare_uploads({"a.txt": "1"})

    def test_skip_unchanged(self):
        comparator = FingerprintComparator(UploadStrategy.SKIP_UNCHANGED)
        decisions = {
            d.name: d
            for d in comparator.compare_uploads(
                {"same": "1", "changed": "2", "new": "3", "multi": "4"},
                {"same": "1", "changed": "x", "multi": "4-2", "extra": "9"},
            )
        }

        assert set(decisions) == {"same", "changed", "new", "multi"}
        assert decisions["same"].action == UploadAction.SKIP
        assert decisions["changed"].action == UploadAction.UPLOAD
        assert decisions["new"].action == UploadAction.UPLOAD
        assert decisions["new"].target_fingerprint is None
        assert decisions["multi"].action == UploadAction.UPLOAD
        assert "multipart" in decisions["multi"].reason


class TestApplyDrift:
    """Tests for drift re-evaluation."""

    def test_unchanged_source_keeps_state(self):
        prior = {"a": "1", "b": "2"}
        assert FingerprintComparator().apply_drift(prior, {"a": "1", "b": "2"}) == prior

    def test_changed_entry_takes_source_fingerprint(self):
        updated = FingerprintComparator().apply_drift(
            {"a": "1", "b": "2"}, {"a": "1", "b": "3"}
        )
        assert updated == {"a": "1", "b": "3"}

    def test_missing_entry_becomes_absent(self):
        updated = FingerprintComparator().apply_drift({"a": "1", "b": "2"}, {"a": "1"})
        assert updated == {"a": "1", "b": ABSENT}

    def test_untracked_source_entries_are_ignored(self):
        updated = FingerprintComparator().apply_drift({"a": "1"}, {"a": "1", "z": "9"})
        assert updated == {"a": "1"}

    def test_absent_entry_that_reappears(self):
        updated = FingerprintComparator().apply_drift({"a": ABSENT}, {"a": "1"})
        assert updated == {"a": "1"}

    def test_does_not_modify_prior(self):
        prior = {"a": "1"}
        FingerprintComparator().apply_drift(prior, {"a": "2"})
        assert prior == {"a": "1"}


class TestClassifyDrift:
    """Tests for detailed drift reports."""

    def test_statuses(self):
        report = FingerprintComparator().classify_drift(
            prior={"same": "1", "changed": "2", "gone": "3", "tampered": "4"},
            source={"same": "1", "changed": "22", "tampered": "4", "new": "5"},
            target={"same": "1", "changed": "2", "gone": "3", "tampered": "44"},
        )
        statuses = {e.name: e.status for e in report.entries}
        assert statuses == {
            "same": DriftStatus.UNCHANGED,
            "changed": DriftStatus.CHANGED,
            "gone": DriftStatus.MISSING_FROM_SOURCE,
            "tampered": DriftStatus.TARGET_MISMATCH,
        }
        assert report.has_drift
        assert [e.name for e in report.drifted] == ["changed", "gone", "tampered"]

    def test_updated_state_matches_apply_drift(self):
        prior = {"a": "1", "b": "2", "c": "3"}
        source = {"a": "1", "b": "20"}
        comparator = FingerprintComparator()
        report = comparator.classify_drift(prior, source, {"a": "x"})
        assert report.updated_state == comparator.apply_drift(prior, source)

    def test_include_new(self):
        report = FingerprintComparator().classify_drift(
            {"a": "1"}, {"a": "1", "b": "2"}, include_new=True
        )
        new = [e for e in report.entries if e.status == DriftStatus.NEW]
        assert [e.name for e in new] == ["b"]
        assert new[0].recorded is None
        assert report.updated_state == {"a": "1"}

    def test_without_target(self):
        report = FingerprintComparator().classify_drift({"a": "1"}, {"a": "1"})
        assert not report.has_drift
        assert report.entries[0].target is None

    def test_counts(self):
        report = FingerprintComparator().classify_drift(
            {"a": "1", "b": "2"}, {"a": "1"}
        )
        counts = report.counts()
        assert counts["unchanged"] == 1
        assert counts["missing_from_source"] == 1
        assert counts["new"] == 0
