"""
Feature parser
Parses Gherkin source into the structured feature model consumed by the executor
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
from gherkinrunner.errors import FeatureParseError, ParseError
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


class StepType(Enum):
    GIVEN = "given"
    WHEN = "when"
    THEN = "then"
    AND = "and"
    BUT = "but"
    ANY = "*"


@dataclass(frozen=True)
class Step:
    type: StepType
    keyword: str
    text: str
    line_number: int
    doc_string: Optional[str] = None
    data_table: Optional[List[List[str]]] = None


@dataclass(frozen=True)
class Background:
    name: str
    steps: List[Step]
    line_number: int = 0


@dataclass(frozen=True)
class Examples:
    name: str
    headers: List[str]
    rows: List[List[str]]
    tags: List[str] = field(default_factory=list)
    line_number: int = 0


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str
    steps: List[Step]
    tags: List[str]
    examples: Optional[List[Examples]] = None
    line_number: int = 0

    @property
    def is_outline(self) -> bool:
        return bool(self.examples)


@dataclass(frozen=True)
class Feature:
    name: str
    description: str
    scenarios: List[Scenario]
    tags: List[str]
    background: Optional[Background] = None
    file_path: str = ""
    line_number: int = 0


@dataclass(frozen=True)
class ParseResult:
    feature: Optional[Feature] = None
    errors: List[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.feature is not None and not self.errors

    def unwrap(self) -> 'Feature':
        """Return the feature or raise FeatureParseError"""
        if not self.ok:
            raise FeatureParseError(self.errors)
        return self.feature


STEP_KEYWORDS = {
    'Given': StepType.GIVEN,
    'When': StepType.WHEN,
    'Then': StepType.THEN,
    'And': StepType.AND,
    'But': StepType.BUT,
    '*': StepType.ANY,
}

SCENARIO_KEYWORDS = ('Scenario Outline:', 'Scenario Template:', 'Scenario:', 'Example:')
OUTLINE_KEYWORDS = ('Scenario Outline:', 'Scenario Template:')
EXAMPLES_KEYWORDS = ('Examples:', 'Scenarios:')
DOC_STRING_DELIMITERS = ('"""', '```')


def split_table_row(line: str) -> List[str]:
    """Split a ``| a | b |`` row into cells, honouring \\| and \\\\ escapes"""
    body = line.strip()
    if body.startswith('|'):
        body = body[1:]
    if body.endswith('|') and not body.endswith('\\|'):
        body = body[:-1]

    cells = []
    current = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == '\\' and i + 1 < len(body):
            nxt = body[i + 1]
            current.append({'|': '|', 'n': '\n', '\\': '\\'}.get(nxt, '\\' + nxt))
            i += 2
            continue
        if char == '|':
            cells.append(''.join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    cells.append(''.join(current).strip())
    return cells


class _ScenarioDraft:
    """Mutable accumulator for a scenario or background while parsing"""

    def __init__(self, kind: str, name: str, tags: List[str], line_number: int):
        self.kind = kind
        self.name = name
        self.tags = tags
        self.line_number = line_number
        self.description: List[str] = []
        self.steps: List[Step] = []
        self.examples: List[Examples] = []

    def build(self):
        if self.kind == 'background':
            return Background(name=self.name, steps=list(self.steps), line_number=self.line_number)
        return Scenario(
            name=self.name,
            description='\n'.join(self.description),
            steps=list(self.steps),
            tags=list(self.tags),
            examples=list(self.examples) or None,
            line_number=self.line_number
        )


class _SourceParser:
    """Single-pass line parser over one feature source"""

    def __init__(self, source: str, file_path: str = ""):
        self.lines = source.splitlines()
        self.file_path = file_path
        self.errors: List[ParseError] = []

        self.feature_name = None
        self.feature_line = 0
        self.feature_tags: List[str] = []
        self.feature_description: List[str] = []
        self.background: Optional[Background] = None
        self.scenarios: List[Scenario] = []

        self.pending_tags: List[str] = []
        self.in_rule_header = False
        self.current: Optional[_ScenarioDraft] = None
        self.step_fields: Optional[dict] = None
        self.examples_fields: Optional[dict] = None
        self.doc_delimiter: Optional[str] = None
        self.doc_indent = 0
        self.doc_lines: List[str] = []
        self.doc_line_number = 0

    def error(self, message: str, line_number: int, raw_line: str = ""):
        column = len(raw_line) - len(raw_line.lstrip()) + 1 if raw_line else 1
        self.errors.append(ParseError(message=message, line=line_number, column=column))

    def parse(self) -> ParseResult:
        for line_number, raw_line in enumerate(self.lines, 1):
            if self.doc_delimiter:
                self._consume_doc_string_line(raw_line, line_number)
                continue
            self._parse_line(raw_line, line_number)

        if self.doc_delimiter:
            self.error("Unterminated doc string", self.doc_line_number)
            self.doc_delimiter = None
        self._close_scenario()

        if self.feature_name is None:
            if not self.errors:
                self.error("No feature found in document", 1)
            return ParseResult(feature=None, errors=self.errors)

        feature = Feature(
            name=self.feature_name,
            description='\n'.join(self.feature_description),
            scenarios=self.scenarios,
            tags=self.feature_tags,
            background=self.background,
            file_path=self.file_path,
            line_number=self.feature_line
        )
        if self.errors:
            return ParseResult(feature=None, errors=self.errors)
        return ParseResult(feature=feature)

    def _parse_line(self, raw_line: str, line_number: int):
        line = raw_line.strip()

        # Skip empty lines and comments
        if not line or line.startswith('#'):
            return

        # Parse tags
        if line.startswith('@'):
            self._close_step()
            tag_part = line.split(' #', 1)[0]
            self.pending_tags.extend(tag for tag in tag_part.split() if tag.startswith('@'))
            return

        if line.startswith(DOC_STRING_DELIMITERS):
            if not self.step_fields:
                self.error("Doc string must follow a step", line_number, raw_line)
                return
            self.doc_delimiter = line[:3]
            self.doc_indent = len(raw_line) - len(raw_line.lstrip())
            self.doc_lines = []
            self.doc_line_number = line_number
            return

        if line.startswith('|'):
            self._parse_table_row(raw_line, line_number)
            return

        if line.startswith('Feature:'):
            self._parse_feature(line, raw_line, line_number)
        elif line.startswith('Rule:'):
            # Rules are flattened: their scenarios belong to the feature
            self._close_scenario()
            self.in_rule_header = True
            self.pending_tags = []
        elif line.startswith('Background:'):
            self._close_scenario()
            if self.feature_name is None:
                self.error("Background found before Feature", line_number, raw_line)
            self.current = _ScenarioDraft('background', line.split(':', 1)[1].strip(), [], line_number)
            self.pending_tags = []
        elif line.startswith(SCENARIO_KEYWORDS):
            self._close_scenario()
            if self.feature_name is None:
                self.error("Scenario found before Feature", line_number, raw_line)
            kind = 'outline' if line.startswith(OUTLINE_KEYWORDS) else 'scenario'
            self.current = _ScenarioDraft(kind, line.split(':', 1)[1].strip(),
                                          self.pending_tags, line_number)
            self.pending_tags = []
        elif line.startswith(EXAMPLES_KEYWORDS):
            self._close_step()
            self._close_examples()
            if not self.current or self.current.kind == 'background':
                self.error("Examples found outside of a Scenario Outline", line_number, raw_line)
                return
            self.examples_fields = {
                'name': line.split(':', 1)[1].strip(),
                'tags': self.pending_tags,
                'line_number': line_number,
                'headers': None,
                'rows': [],
            }
            self.pending_tags = []
        else:
            keyword, text = self._split_step(line)
            if keyword:
                self._parse_step(keyword, text, raw_line, line_number)
            else:
                self._parse_free_text(line, raw_line, line_number)

    def _parse_feature(self, line: str, raw_line: str, line_number: int):
        if self.feature_name is not None:
            self.error("Only one Feature is allowed per document", line_number, raw_line)
            return
        self.feature_name = line[len('Feature:'):].strip()
        self.feature_line = line_number
        self.feature_tags = self.pending_tags
        self.pending_tags = []

    @staticmethod
    def _split_step(line: str) -> Tuple[Optional[str], str]:
        for keyword in STEP_KEYWORDS:
            if line == keyword or line.startswith(keyword + ' '):
                return keyword, line[len(keyword):].strip()
        return None, line

    def _parse_step(self, keyword: str, text: str, raw_line: str, line_number: int):
        self._close_step()
        if self.examples_fields:
            self.error("Steps cannot follow an Examples table", line_number, raw_line)
            return
        if not self.current:
            self.error("Step found outside of a Scenario or Background", line_number, raw_line)
            return
        self.step_fields = {
            'type': STEP_KEYWORDS[keyword],
            'keyword': keyword,
            'text': text,
            'line_number': line_number,
            'doc_string': None,
            'data_table': None,
        }

    def _parse_free_text(self, line: str, raw_line: str, line_number: int):
        if self.current is None and self.in_rule_header:
            return
        if self.current is None and self.feature_name is not None and not self.scenarios \
                and self.background is None:
            self.feature_description.append(line)
        elif self.current and not self.current.steps and not self.step_fields \
                and not self.examples_fields:
            self.current.description.append(line)
        else:
            self.error(f"Unexpected line: {line}", line_number, raw_line)

    def _parse_table_row(self, raw_line: str, line_number: int):
        cells = split_table_row(raw_line)

        if self.examples_fields:
            if self.examples_fields['headers'] is None:
                self.examples_fields['headers'] = cells
            elif len(cells) != len(self.examples_fields['headers']):
                self.error("Inconsistent cell count within the table", line_number, raw_line)
            else:
                self.examples_fields['rows'].append(cells)
            return

        if self.step_fields:
            table = self.step_fields['data_table']
            if table is None:
                self.step_fields['data_table'] = [cells]
            elif len(cells) != len(table[0]):
                self.error("Inconsistent cell count within the table", line_number, raw_line)
            else:
                table.append(cells)
            return

        self.error("Table row must follow a step or Examples", line_number, raw_line)

    def _consume_doc_string_line(self, raw_line: str, line_number: int):
        if raw_line.strip() == self.doc_delimiter:
            self.step_fields['doc_string'] = '\n'.join(self.doc_lines)
            self.doc_delimiter = None
            return
        # Strip the delimiter's indentation from content lines
        indent = len(raw_line) - len(raw_line.lstrip())
        self.doc_lines.append(raw_line[min(indent, self.doc_indent):])

    def _close_step(self):
        if self.step_fields and self.current:
            self.current.steps.append(Step(**self.step_fields))
        self.step_fields = None

    def _close_examples(self):
        if self.examples_fields and self.current:
            fields = self.examples_fields
            self.current.examples.append(Examples(
                name=fields['name'],
                headers=fields['headers'] or [],
                rows=fields['rows'],
                tags=fields['tags'],
                line_number=fields['line_number']
            ))
        self.examples_fields = None

    def _close_scenario(self):
        self._close_step()
        self._close_examples()
        if not self.current:
            return
        if self.current.kind == 'outline' and not self.current.examples:
            self.error(f"Scenario Outline '{self.current.name}' has no Examples", self.current.line_number)
        built = self.current.build()
        if isinstance(built, Background):
            self.background = built
        else:
            self.scenarios.append(built)
        self.current = None


def parse(source: str, file_path: str = "") -> ParseResult:
    """Parse feature source text into a Feature or a list of ParseErrors"""
    return _SourceParser(source, file_path).parse()


class FeatureParser:
    """Load and parse .feature files from a directory"""

    def __init__(self, features_dir: str):
        self.features_dir = Path(features_dir)

    def parse_features(self, tags: List[str] = None) -> List[Feature]:
        """Parse all feature files in directory"""
        features = []

        if self.features_dir.is_file():
            feature_files = [self.features_dir]
        else:
            feature_files = sorted(self.features_dir.glob("**/*.feature"))

        for feature_file in feature_files:
            feature = self.parse_file(feature_file)
            if not feature:
                continue

            # Filter by tags if provided
            if tags:
                filtered_scenarios = [
                    scenario for scenario in feature.scenarios
                    if any(tag in scenario.tags or tag in feature.tags for tag in tags)
                ]
                if filtered_scenarios:
                    features.append(dataclasses.replace(feature, scenarios=filtered_scenarios))
            else:
                features.append(feature)

        return features

    def parse_file(self, file_path: Path) -> Optional[Feature]:
        """Parse a single feature file, logging any parse errors"""
        with open(file_path, 'r', encoding='utf-8') as f:
            source = f.read()

        try:
            return parse(source, str(file_path)).unwrap()
        except FeatureParseError as e:
            for error in e.errors:
                logger.error(f"Error parsing feature file {file_path}: {error}")
            return None
