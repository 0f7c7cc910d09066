"""Unit tests for RiskClassifier and the risk rule document."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from localspace.core.config.risk_config import (
    RiskConfig,
    RiskRule,
    default_risk_config,
    load_risk_config,
)
from localspace.core.types import RiskLevel
from localspace.services.risk_classifier import DEFAULT_EXPLANATION, RiskClassifier


class TestClassify:
    """Test rule evaluation order and matching."""

    def test_first_matching_path_rule_wins(self, classifier):
        """A path under both Windows and AppData gets the earlier rule."""
        level, explanation = classifier.classify(
            "C:\\Windows\\Users\\me\\AppData\\file.txt"
        )
        assert level == RiskLevel.HIGH_RISK
        assert explanation == "Critical operating system files."

    def test_review_rule(self, classifier):
        level, _ = classifier.classify("C:\\Users\\me\\AppData\\Local\\cache.db")
        assert level == RiskLevel.REVIEW

    def test_unmatched_path_is_safe_with_explanation(self, classifier):
        level, explanation = classifier.classify("/home/user/docs/report.pdf")
        assert level == RiskLevel.SAFE
        assert explanation == DEFAULT_EXPLANATION
        assert explanation

    def test_path_match_is_case_insensitive(self, classifier):
        level, _ = classifier.classify("c:\\windows\\system32\\notes.txt")
        assert level == RiskLevel.HIGH_RISK

    def test_extension_rules_apply_to_files(self, classifier):
        assert classifier.classify("/home/user/lib/helper.dll")[0] == RiskLevel.HIGH_RISK
        assert classifier.classify("/home/user/SETUP.EXE")[0] == RiskLevel.REVIEW

    def test_directories_skip_extension_rules(self, classifier):
        level, explanation = classifier.classify("/home/user/plugins.dll", is_directory=True)
        assert level == RiskLevel.SAFE
        assert explanation == DEFAULT_EXPLANATION

    def test_path_rules_beat_extension_rules(self, temp_dir):
        config = RiskConfig(
            rules=[
                RiskRule(pattern=".dll", level=RiskLevel.HIGH_RISK, is_extension=True),
                RiskRule(pattern="Downloads", level=RiskLevel.SAFE, explanation="Downloads"),
            ]
        )
        classifier = RiskClassifier(temp_dir / "rules.json", config=config)

        level, explanation = classifier.classify("/home/user/Downloads/helper.dll")
        assert level == RiskLevel.SAFE
        assert explanation == "Downloads"

    def test_rule_order_is_significant(self, temp_dir):
        broad = RiskRule(pattern="projects", level=RiskLevel.SAFE, explanation="broad")
        narrow = RiskRule(
            pattern="projects/secret", level=RiskLevel.HIGH_RISK, explanation="narrow"
        )
        path = "/home/user/projects/secret/key.pem"

        first = RiskClassifier(temp_dir / "a.json", config=RiskConfig(rules=[broad, narrow]))
        second = RiskClassifier(temp_dir / "b.json", config=RiskConfig(rules=[narrow, broad]))

        assert first.classify(path) == (RiskLevel.SAFE, "broad")
        assert second.classify(path) == (RiskLevel.HIGH_RISK, "narrow")

    def test_extension_rule_without_leading_dot(self, temp_dir):
        config = RiskConfig(
            rules=[RiskRule(pattern="ISO", level=RiskLevel.REVIEW, is_extension=True)]
        )
        classifier = RiskClassifier(temp_dir / "rules.json", config=config)

        assert classifier.classify("/data/image.iso")[0] == RiskLevel.REVIEW
        assert classifier.classify("/data/iso")[0] == RiskLevel.SAFE

    def test_get_category(self):
        assert RiskClassifier.get_category(".MP4") == "Video"
        assert RiskClassifier.get_category("log") == "Document/Log"
        assert RiskClassifier.get_category(".xyz") == "Other"
        assert RiskClassifier.get_category("") == "Other"


class TestRuleDocument:
    """Test loading, persisting and replacing the rule document."""

    def test_missing_file_writes_defaults(self, temp_dir):
        path = temp_dir / "nested" / "risk_config.json"

        classifier = RiskClassifier(path)

        assert path.exists()
        assert classifier.get_config() == default_risk_config()

    def test_corrupt_file_falls_back_to_defaults(self, temp_dir):
        path = temp_dir / "risk_config.json"
        path.write_text("{not json", encoding="utf-8")

        config = load_risk_config(path)

        assert config == default_risk_config()
        # The broken document is replaced with a valid one
        assert json.loads(path.read_text(encoding="utf-8"))["rules"]

    def test_invalid_document_falls_back_to_defaults(self, temp_dir):
        path = temp_dir / "risk_config.json"
        path.write_text(json.dumps({"rules": [{"pattern": "x", "level": "bogus"}]}))

        assert load_risk_config(path) == default_risk_config()

    def test_update_config_persists_and_applies(self, temp_dir):
        path = temp_dir / "risk_config.json"
        classifier = RiskClassifier(path)
        new_config = RiskConfig(
            rules=[RiskRule(pattern="media", level=RiskLevel.REVIEW, explanation="Media")],
            large_file_threshold_bytes=1024,
            old_file_threshold_days=30,
        )

        assert classifier.update_config(new_config) is True
        assert classifier.classify("/srv/media/movie.mkv") == (RiskLevel.REVIEW, "Media")

        reloaded = RiskClassifier(path)
        assert reloaded.get_config() == new_config

    def test_update_config_reports_write_failure(self, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        classifier = RiskClassifier(blocker / "risk.json", config=default_risk_config())
        new_config = RiskConfig(rules=[])

        assert classifier.update_config(new_config) is False
        # Rules still apply in memory
        assert classifier.get_config() == new_config

    def test_failed_update_is_lost_on_reload(self, temp_dir):
        path = temp_dir / "risk_config.json"
        classifier = RiskClassifier(path)
        on_disk = classifier.get_config()
        new_config = RiskConfig(rules=[])

        with patch(
            "localspace.services.risk_classifier.save_risk_config",
            side_effect=OSError("read-only"),
        ):
            assert classifier.update_config(new_config) is False

        assert classifier.get_config() == new_config
        assert classifier.reload() == on_disk

    def test_reload_reads_external_edits(self, temp_dir):
        path = temp_dir / "risk_config.json"
        classifier = RiskClassifier(path)
        edited = RiskConfig(
            rules=[RiskRule(pattern=".bak", level=RiskLevel.SAFE, is_extension=True)]
        )
        path.write_text(edited.model_dump_json(), encoding="utf-8")

        assert classifier.reload() == edited
        assert classifier.get_config() == edited

    def test_rule_pattern_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            RiskRule(pattern="", level=RiskLevel.SAFE)

    def test_thresholds_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            RiskConfig(large_file_threshold_bytes=-1)

    def test_default_rules_are_split_by_kind(self):
        config = default_risk_config()
        assert all(not rule.is_extension for rule in config.path_rules)
        assert all(rule.is_extension for rule in config.extension_rules)
        assert len(config.path_rules) + len(config.extension_rules) == len(config.rules)
