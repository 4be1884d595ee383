import json

import yaml

from jira_report.core.user_config import UserConfig


def test_rule_names_merge_case_insensitively(config):
    assert config.add_project_rule("Alpha", ["alpha", " ALPHA "])
    assert config.add_project_rule(" alpha ", ["a-team"])
    rules = config.project_rules
    assert len(rules) == 1
    assert rules[0].name == "Alpha"
    assert rules[0].patterns == ["alpha", "a-team"]
    assert config.detect_project("[a-team] kickoff") == "Alpha"


def test_rule_validation_and_rename(config):
    assert config.add_project_rule("   ").error == "validation"
    config.add_project_rule("Alpha", ["alpha"])
    config.add_project_rule("Beta", ["beta"])

    result = config.rename_project_rule("alpha", "  ")
    assert not result
    assert result.error == "validation"
    assert [r.name for r in config.project_rules] == ["Alpha", "Beta"]

    assert config.rename_project_rule("alpha", "BETA").error == "duplicate"
    assert config.rename_project_rule("Alpha", "Gamma")
    assert config.rename_project_rule("missing", "x").error == "not_found"
    assert [r.name for r in config.project_rules] == ["Gamma", "Beta"]


def test_patterns_are_idempotent(config):
    config.add_project_rule("Alpha")
    assert config.add_pattern("Alpha", " Login ")
    assert config.add_pattern("alpha", "login")
    assert config.project_rules[0].patterns == ["login"]
    assert config.remove_pattern("Alpha", "LOGIN")
    assert config.remove_pattern("Alpha", "login")
    assert config.project_rules[0].patterns == []
    assert config.update_project_rule("Alpha", ["x", "Y"])
    assert config.project_rules[0].patterns == ["x", "y"]
    assert config.remove_project_rule("ALPHA")
    assert config.project_rules == []


def test_getters_return_copies(config):
    config.add_project_rule("Alpha", ["alpha"])
    config.add_custom_tag("urgent")
    config.project_rules[0].patterns.append("hack")
    config.custom_tags.append("hack")
    config.blacklist.append("HACK-1")
    assert config.project_rules[0].patterns == ["alpha"]
    assert config.custom_tags == ["urgent"]
    assert not config.is_blacklisted("HACK-1")


def test_blacklist(config):
    assert config.add_to_blacklist(" a-1 ")
    assert config.is_blacklisted("A-1")
    assert config.is_blacklisted("a-1")
    assert config.add_to_blacklist("A-1").error == "duplicate"
    assert config.blacklist == ["A-1"]
    assert config.remove_from_blacklist("a-1")
    assert not config.is_blacklisted("A-1")
    assert config.remove_from_blacklist("A-1").error == "not_found"


def test_custom_tags(config):
    assert config.add_custom_tag("Urgent")
    assert config.add_custom_tag("urgent").error == "duplicate"
    assert config.add_custom_tag(" ").error == "validation"
    assert config.remove_custom_tag("URGENT")
    assert config.custom_tags == []


def test_mutations_persist_before_notifying(tmp_path):
    path = tmp_path / "user-config.yaml"
    config = UserConfig(path)
    seen = []
    config.subscribe(lambda cfg: seen.append(yaml.safe_load(path.read_text(encoding="utf-8"))))

    config.add_to_blacklist("A-1")
    assert seen[-1]["blacklist"] == ["A-1"]

    config.add_project_rule("Alpha", ["alpha"])
    reloaded = UserConfig(path)
    assert reloaded.to_dict() == config.to_dict()
    assert reloaded.is_blacklisted("a-1")


def test_corrupt_yaml_is_ignored(tmp_path):
    path = tmp_path / "user-config.yaml"
    path.write_text("blacklist: [unclosed", encoding="utf-8")
    config = UserConfig(path)
    assert config.blacklist == []


def test_export_import_and_reset(config):
    config.add_custom_tag("urgent")
    config.add_project_rule("Alpha", ["alpha"])
    config.add_to_blacklist("A-1")
    exported = config.export_config()
    assert json.loads(exported)["config"]["blacklist"] == ["A-1"]

    other = UserConfig()
    assert other.import_config(exported)
    assert other.to_dict() == config.to_dict()
    assert other.import_config("{not json").error == "validation"
    assert other.import_config(json.dumps({"tasks": []})).error == "validation"

    notified = []
    other.subscribe(notified.append)
    other.reset()
    assert other.to_dict() == {"customTags": [], "projectRules": [], "blacklist": []}
    assert notified == [other]


def test_import_accepts_single_strings(config):
    payload = {
        "config": {
            "customTags": "urgent",
            "projectRules": [{"name": "Alpha", "patterns": "alpha"}, {"name": "Beta", "patterns": 3}],
            "blacklist": "a-1",
        }
    }
    assert config.import_config(json.dumps(payload))
    assert config.custom_tags == ["urgent"]
    assert [(r.name, r.patterns) for r in config.project_rules] == [("Alpha", ["alpha"]), ("Beta", [])]
    assert config.blacklist == ["A-1"]
