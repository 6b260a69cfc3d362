"""
Script storage
Named user scripts persisted in a YAML file
"""
import uuid
import yaml
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class Script:
    id: str
    name: str
    code: str
    enabled: bool = True
    created_at: float = 0.0
    updated_at: float = 0.0


class ScriptStorage:
    """Manages the script file"""

    def __init__(self, path: str = "config/scripts.yaml"):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> List[Script]:
        """Load scripts from file"""
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f) or []
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading scripts from {self.path}: {e}")
            return []

        scripts = []
        for entry in data:
            try:
                scripts.append(Script(**entry))
            except TypeError as e:
                logger.warning(f"Skipping malformed script entry: {e}")
        return scripts

    def _save(self, scripts: List[Script]):
        with open(self.path, 'w') as f:
            yaml.safe_dump([asdict(s) for s in scripts], f, sort_keys=False, allow_unicode=True)

    def save(self, name: str, code: str, existing_id: Optional[str] = None) -> Script:
        """Create a script, or update name and code of an existing one"""
        scripts = self.load()
        now = datetime.now().timestamp()

        if existing_id:
            for script in scripts:
                if script.id == existing_id:
                    script.name = name
                    script.code = code
                    script.updated_at = now
                    self._save(scripts)
                    return script

        script = Script(
            id=f"script_{uuid.uuid4().hex[:8]}",
            name=name,
            code=code,
            created_at=now,
            updated_at=now
        )
        scripts.append(script)
        self._save(scripts)
        logger.info(f"Saved script '{name}'")
        return script

    def delete(self, script_id: str):
        scripts = self.load()
        self._save([s for s in scripts if s.id != script_id])

    def toggle(self, script_id: str, enabled: bool):
        scripts = self.load()
        for script in scripts:
            if script.id == script_id:
                script.enabled = enabled
                script.updated_at = datetime.now().timestamp()
                self._save(scripts)
                return
