"""Unit tests for feature parser"""
import pytest
from gherkinrunner.errors import FeatureParseError
from gherkinrunner.parser.feature_parser import FeatureParser, StepType, parse, split_table_row


SIMPLE_FEATURE = '''
@api
Feature: Users API
  Checks the users endpoint

  Background:
    * url https://api.example.com

  @smoke
  Scenario: Fetch user
    Given method GET
    When status 200
    Then match response.id == 1
'''


def test_parse_simple_feature():
    result = parse(SIMPLE_FEATURE, "users.feature")

    assert result.ok
    feature = result.feature
    assert feature.name == "Users API"
    assert feature.description == "Checks the users endpoint"
    assert feature.tags == ['@api']
    assert feature.file_path == "users.feature"
    assert len(feature.background.steps) == 1
    assert feature.background.steps[0].text == "url https://api.example.com"

    scenario = feature.scenarios[0]
    assert scenario.name == "Fetch user"
    assert scenario.tags == ['@smoke']
    assert [s.type for s in scenario.steps] == [StepType.GIVEN, StepType.WHEN, StepType.THEN]
    assert scenario.steps[2].text == "match response.id == 1"
    assert scenario.steps[2].line_number == 13


def test_parse_star_keyword():
    result = parse("Feature: F\n  Scenario: S\n    * print 'hi'\n")

    step = result.feature.scenarios[0].steps[0]
    assert step.keyword == '*'
    assert step.type == StepType.ANY
    assert step.text == "print 'hi'"


def test_parse_doc_string_strips_indentation():
    source = '''Feature: F
  Scenario: S
    * request
      """
      {
        "name": "Ada"
      }
      """
'''
    step = parse(source).feature.scenarios[0].steps[0]

    assert step.doc_string == '{\n  "name": "Ada"\n}'


def test_parse_data_table():
    source = '''Feature: F
  Scenario: S
    Given the users
      | name | role  |
      | Ada  | admin |
'''
    step = parse(source).feature.scenarios[0].steps[0]

    assert step.data_table == [['name', 'role'], ['Ada', 'admin']]


def test_parse_scenario_outline():
    source = '''Feature: F
  Scenario Outline: Lookup <id>
    * url https://api.example.com/users/<id>

    @first
    Examples: Ids
      | id |
      | 1  |
      | 2  |
'''
    scenario = parse(source).feature.scenarios[0]

    assert scenario.is_outline
    assert scenario.examples[0].headers == ['id']
    assert scenario.examples[0].rows == [['1'], ['2']]
    assert scenario.examples[0].tags == ['@first']


def test_parse_rule_scenarios_flattened():
    source = '''Feature: F
  Rule: Users
    Scenario: A
      * print 1
  Rule: Orders
    Scenario: B
      * print 2
'''
    feature = parse(source).feature

    assert [s.name for s in feature.scenarios] == ['A', 'B']


def test_split_table_row_escapes():
    assert split_table_row(r'| a \| b | c\\d |') == ['a | b', 'c\\d']


@pytest.mark.parametrize("source, message", [
    ("", "No feature found in document"),
    ("Scenario: S\n  * print 1\n", "Scenario found before Feature"),
    ("Feature: A\nFeature: B\n", "Only one Feature is allowed per document"),
    ("Feature: F\n  Scenario: S\n    * request\n      \"\"\"\n      open\n", "Unterminated doc string"),
    ("Feature: F\n  Scenario: S\n    * x\n      | a | b |\n      | c |\n", "Inconsistent cell count within the table"),
    ("Feature: F\n  * print 1\n", "Step found outside of a Scenario or Background"),
    ("Feature: F\n  Scenario Outline: O\n    * print <x>\n", "Scenario Outline 'O' has no Examples"),
])
def test_parse_errors(source, message):
    result = parse(source)

    assert not result.ok
    assert result.feature is None
    assert message in [e.message for e in result.errors]


def test_parse_error_position():
    result = parse("Feature: A\n\n   Feature: B\n")

    error = result.errors[0]
    assert error.line == 3
    assert error.column == 4


def test_parse_features_filters_by_tag(tmp_path):
    (tmp_path / "a.feature").write_text(
        "Feature: A\n  @smoke\n  Scenario: One\n    * print 1\n  Scenario: Two\n    * print 2\n"
    )
    (tmp_path / "b.feature").write_text("Feature: B\n  Scenario: Three\n    * print 3\n")

    features = FeatureParser(str(tmp_path)).parse_features(['@smoke'])

    assert len(features) == 1
    assert [s.name for s in features[0].scenarios] == ['One']


def test_parse_features_skips_invalid_files(tmp_path):
    (tmp_path / "good.feature").write_text("Feature: Good\n  Scenario: S\n    * print 1\n")
    (tmp_path / "bad.feature").write_text("Scenario: orphan\n")

    features = FeatureParser(str(tmp_path)).parse_features()

    assert [f.name for f in features] == ['Good']


def test_unwrap_raises_with_all_errors():
    result = parse("Feature: A\nFeature: B\n  * print 1\n")

    with pytest.raises(FeatureParseError) as exc:
        result.unwrap()

    assert len(exc.value.errors) == 2
    assert "(2:1) Only one Feature is allowed per document" in str(exc.value)


def test_outline_without_examples_is_not_runnable():
    result = parse("Feature: F\n  Scenario: Plain\n    * print 1\n\n  Scenario Template: Lookup <id>\n    * print <id>\n")

    assert result.feature is None
    assert [(e.line, e.message) for e in result.errors] == [(5, "Scenario Outline 'Lookup <id>' has no Examples")]
