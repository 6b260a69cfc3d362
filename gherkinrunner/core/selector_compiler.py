"""
Selector compiler
Turns the selector language into JavaScript expressions evaluated in the page.

Grammar:
    selector := segment (' >> ' segment)*
    segment  := (css | role '"' name '"') (' [' N ']')?

Accessibility segments are matched against a role's candidate CSS selectors and
the element's accessible name. When several elements match and no index was given,
the first match in candidate order wins and the resolution reports a rewritten
selector that would have been unambiguous.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

ROLE_MAP: Dict[str, List[str]] = {
    'button': ['button', '[role="button"]', 'input[type="button"]', 'input[type="submit"]', 'input[type="reset"]'],
    'textbox': ['input:not([type])', 'input[type="text"]', 'input[type="email"]', 'input[type="password"]',
                'input[type="search"]', 'input[type="tel"]', 'input[type="url"]', 'input[type="number"]',
                'textarea', '[role="textbox"]'],
    'link': ['a[href]', '[role="link"]'],
    'heading': ['h1', 'h2', 'h3', 'h4', 'h5', 'h6', '[role="heading"]'],
    'checkbox': ['input[type="checkbox"]', '[role="checkbox"]'],
    'radio': ['input[type="radio"]', '[role="radio"]'],
    'combobox': ['select', '[role="combobox"]', '[role="listbox"]'],
    'listbox': ['select[multiple]', '[role="listbox"]'],
    'option': ['option', '[role="option"]'],
    'menuitem': ['[role="menuitem"]', '[role="menuitemcheckbox"]', '[role="menuitemradio"]'],
    'tab': ['[role="tab"]'],
    'dialog': ['dialog', '[role="dialog"]', '[role="alertdialog"]'],
    'alert': ['[role="alert"]'],
    'img': ['img', '[role="img"]'],
    'list': ['ul', 'ol', '[role="list"]'],
    'navigation': ['nav', '[role="navigation"]'],
    'search': ['[role="search"]', 'search'],
    'region': ['section[aria-label]', '[role="region"]'],
    'form': ['form', '[role="form"]'],
    'text': ['*'],
    'StaticText': ['*'],
}

# Roles matched by substring instead of exact accessible name
PARTIAL_ROLES = ('text', 'StaticText')

A11Y_PATTERN = re.compile(r'^(' + '|'.join(ROLE_MAP) + r')\s+"(.+)"$')
INDEX_PATTERN = re.compile(r'^(.+?)\s+\[(\d+)\]$')
CHAIN_SEPARATOR = ' >> '

MAX_ANCHOR_NAME_LENGTH = 60

_RUNTIME = r"""
const ROLES = __ROLES__;
const PARTIAL = __PARTIAL__;
const MAX_NAME = __MAX_NAME__;
const SKIP_TAGS = ['HTML', 'HEAD', 'TITLE', 'SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE'];

function clean(value) {
  return value == null ? '' : String(value).trim();
}

function accessibleName(el) {
  const ariaLabel = clean(el.getAttribute('aria-label'));
  if (ariaLabel) return ariaLabel;
  const labelledBy = clean(el.getAttribute('aria-labelledby'));
  if (labelledBy) {
    const text = labelledBy.split(/\s+/)
      .map(id => document.getElementById(id))
      .filter(node => node)
      .map(node => clean(node.textContent))
      .join(' ').trim();
    if (text) return text;
  }
  if (el.id) {
    const label = document.querySelector('label[for="' + CSS.escape(el.id) + '"]');
    if (label && clean(label.textContent)) return clean(label.textContent);
  }
  if (clean(el.placeholder)) return clean(el.placeholder);
  if ((el.type === 'submit' || el.type === 'button') && clean(el.value)) return clean(el.value);
  if (clean(el.alt)) return clean(el.alt);
  if (clean(el.title)) return clean(el.title);
  return clean(el.textContent);
}

function queryAll(scope, css) {
  try {
    return Array.from(scope.querySelectorAll(css));
  } catch (e) {
    return null;
  }
}

function matchesCss(el, css) {
  try {
    return el.matches(css);
  } catch (e) {
    return false;
  }
}

function a11yMatches(scope, seg) {
  const found = [];
  for (const css of seg.candidates) {
    for (const el of queryAll(scope, css) || []) {
      if (found.indexOf(el) !== -1) continue;
      if (seg.partial && SKIP_TAGS.indexOf(el.tagName) !== -1) continue;
      const name = accessibleName(el);
      if (seg.partial ? name.indexOf(seg.name) !== -1 : name === seg.name) found.push(el);
    }
  }
  if (!seg.partial) return found;
  return found.filter(el => !found.some(other => other !== el && el.contains(other)));
}

function anchorFor(scope, node) {
  if (node.id) {
    const css = '#' + CSS.escape(node.id);
    const hits = queryAll(scope, css);
    if (hits && hits.length === 1 && hits[0] === node) return css;
  }
  for (const role of Object.keys(ROLES)) {
    if (PARTIAL.indexOf(role) !== -1) continue;
    if (!ROLES[role].some(css => matchesCss(node, css))) continue;
    const name = accessibleName(node);
    if (!name || name.length >= MAX_NAME || name.indexOf('\n') !== -1) return null;
    const hits = a11yMatches(scope, {candidates: ROLES[role], name: name, partial: false});
    if (hits.length === 1 && hits[0] === node) return role + ' "' + name + '"';
    return null;
  }
  return null;
}

function disambiguate(scope, seg, matches) {
  const target = matches[0];
  const root = scope === document ? document.documentElement : scope;
  for (let node = target.parentElement; node && node !== root; node = node.parentElement) {
    const anchor = anchorFor(scope, node);
    if (anchor && a11yMatches(node, seg).length === 1) return anchor + ' >> ' + seg.source;
  }
  return seg.source + ' [' + (matches.indexOf(target) + 1) + ']';
}

function resolveSegment(scope, seg) {
  if (seg.kind === 'a11y') {
    const matches = a11yMatches(scope, seg);
    if (matches.length > 0) {
      if (seg.index !== null) {
        return {element: matches[seg.index - 1] || null, count: matches.length, rewrite: null};
      }
      if (matches.length === 1) {
        return {element: matches[0], count: 1, rewrite: null};
      }
      return {element: matches[0], count: matches.length, rewrite: disambiguate(scope, seg, matches)};
    }
  }
  const hits = queryAll(scope, seg.css);
  if (hits === null) return {element: null, count: 0, rewrite: null};
  const index = seg.index !== null ? seg.index - 1 : 0;
  return {element: hits[index] || null, count: hits.length, rewrite: null};
}

function resolve(plan) {
  const texts = plan.map(seg => seg.text);
  let scope = document;
  let last = {element: null, count: 0, rewrite: null};
  for (let i = 0; i < plan.length; i++) {
    last = resolveSegment(scope, plan[i]);
    if (last.rewrite) texts[i] = last.rewrite;
    if (!last.element) break;
    scope = last.element;
  }
  return {element: last.element, count: last.count, selector: texts.join(' >> ')};
}
"""


def _runtime() -> str:
    return (_RUNTIME
            .replace('__ROLES__', json.dumps(ROLE_MAP))
            .replace('__PARTIAL__', json.dumps(list(PARTIAL_ROLES)))
            .replace('__MAX_NAME__', str(MAX_ANCHOR_NAME_LENGTH)))


RUNTIME_JS = _runtime()


@dataclass(frozen=True)
class Segment:
    """One `` >> ``-separated piece of a selector"""
    text: str
    kind: str  # 'a11y' or 'css'
    source: str  # text without the index suffix
    role: Optional[str] = None
    name: Optional[str] = None
    index: Optional[int] = None  # 1-based

    @property
    def partial(self) -> bool:
        return self.role in PARTIAL_ROLES

    @property
    def candidates(self) -> List[str]:
        return ROLE_MAP.get(self.role, []) if self.role else []

    def to_plan(self) -> Dict:
        return {
            'text': self.text,
            'source': self.source,
            'kind': self.kind,
            'css': self.source,
            'candidates': self.candidates,
            'name': self.name,
            'partial': self.partial,
            'index': self.index,
        }


def parse_segment(text: str) -> Segment:
    text = text.strip()
    source = text
    index = None

    indexed = INDEX_PATTERN.match(text)
    if indexed:
        source = indexed.group(1).strip()
        index = int(indexed.group(2))

    a11y = A11Y_PATTERN.match(source)
    if a11y:
        return Segment(text=text, kind='a11y', source=source, role=a11y.group(1), name=a11y.group(2), index=index)
    return Segment(text=text, kind='css', source=source, index=index)


def parse_selector(selector: str) -> List[Segment]:
    """Split a selector into its chain segments"""
    if not selector or not selector.strip():
        raise ValueError("Empty selector")

    parts = [part.strip() for part in selector.split(CHAIN_SEPARATOR)]
    if any(not part for part in parts):
        raise ValueError(f"Empty segment in selector chain: {selector}")
    return [parse_segment(part) for part in parts]


@dataclass
class CompiledSelector:
    selector: str
    segments: List[Segment] = field(default_factory=list)
    expression: str = ''
    resolve_expression: str = ''


class SelectorCompiler:
    """Compiles selectors to page-side JavaScript, caching by selector text"""

    def __init__(self):
        self._cache: Dict[str, CompiledSelector] = {}

    def compile(self, selector: str) -> CompiledSelector:
        if selector in self._cache:
            return self._cache[selector]

        segments = parse_selector(selector)
        plan = json.dumps([segment.to_plan() for segment in segments])
        compiled = CompiledSelector(
            selector=selector,
            segments=segments,
            expression=f"(() => {{ {RUNTIME_JS}\nreturn resolve({plan}).element; }})()",
            resolve_expression=(
                f"(() => {{ {RUNTIME_JS}\nconst r = resolve({plan});\n"
                f"return {{found: r.element !== null, count: r.count, selector: r.selector}}; }})()"
            )
        )

        logger.debug(f"Compiled selector '{selector}' into {len(segments)} segment(s)")
        self._cache[selector] = compiled
        return compiled
