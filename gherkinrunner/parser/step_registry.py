"""
Step registry and matcher
Maps step text to the first registered step definition whose pattern matches
"""

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class StepMatch:
    """Captured groups handed to a step handler"""
    groups: List[Optional[str]] = field(default_factory=list)
    params: Dict[str, str] = field(default_factory=dict)


# handler(ctx, match, doc_string, data_table)
StepHandler = Callable[[Any, StepMatch, Optional[str], Optional[List[List[str]]]], Awaitable[None]]


@dataclass
class StepDefinition:
    """Represents a step definition: pattern + async handler"""
    pattern: Union[str, re.Pattern]
    handler: StepHandler
    description: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        """Compile the regex pattern"""
        if isinstance(self.pattern, str):
            self.pattern = re.compile(self.pattern)


@dataclass
class MatchResult:
    found: bool
    definition: Optional[StepDefinition] = None
    match: Optional[StepMatch] = None


def match_step(text: str, definitions: Iterable[StepDefinition]) -> MatchResult:
    """Return the first definition whose pattern matches the whole step text"""
    for definition in definitions:
        result = definition.pattern.fullmatch(text)
        if result:
            params = {k: v for k, v in result.groupdict().items() if v is not None}
            return MatchResult(
                found=True,
                definition=definition,
                match=StepMatch(groups=list(result.groups()), params=params)
            )

    return MatchResult(found=False)


class StepRegistry:
    """Ordered collection of step definitions; registration order is match priority"""

    def __init__(self):
        self._definitions: List[StepDefinition] = []

    def register(self, definition: StepDefinition):
        self._definitions.append(definition)
        logger.debug(f"Registered step: {definition.pattern.pattern}")

    def register_all(self, definitions: Iterable[StepDefinition]):
        for definition in definitions:
            self.register(definition)

    def unregister_by_source(self, source: str) -> int:
        """Remove every definition tagged with source, returns how many were removed"""
        before = len(self._definitions)
        self._definitions = [d for d in self._definitions if d.source != source]
        removed = before - len(self._definitions)
        if removed:
            logger.debug(f"Unregistered {removed} step(s) from source '{source}'")
        return removed

    def match(self, text: str) -> MatchResult:
        return match_step(text, self._definitions)

    @property
    def definitions(self) -> List[StepDefinition]:
        return list(self._definitions)

    def clear(self):
        self._definitions = []

    def __len__(self):
        return len(self._definitions)

    def describe(self) -> List[Dict]:
        """List registered patterns in match order"""
        return [
            {
                'pattern': d.pattern.pattern,
                'description': d.description,
                'source': d.source,
            }
            for d in self._definitions
        ]
