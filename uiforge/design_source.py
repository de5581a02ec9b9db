"""Design sources that read a specification exported to disk.

Example design.yaml:
    name: Dashboard
    tokens:
      colors: {primary: "#0f62fe"}
    components:
      - name: Button
        tier: elements
        description: Primary call-to-action button
        props: {label: string, onClick: "() => void"}
      - name: SearchBar
        tier: components
        dependencies: [Button, Input]
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from uiforge.exceptions import DesignSourceError
from uiforge.workflow.collaborators import DesignSpec

logger = logging.getLogger(__name__)


class FileDesignSource:
    """DesignSource reading a YAML or JSON design export."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    async def extract(self) -> DesignSpec | None:
        """Load and validate the design file.

        Raises:
            DesignSourceError: If the file is missing, unparseable or invalid.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise DesignSourceError(f"Could not read design file {self.path}: {e}") from e

        try:
            if self.path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DesignSourceError(f"Could not parse design file {self.path}: {e}") from e

        if data is None:
            logger.warning(f"Design file {self.path} is empty")
            return None

        try:
            spec = DesignSpec.model_validate(data)
        except ValidationError as e:
            raise DesignSourceError(f"Invalid design file {self.path}: {e}") from e

        logger.info(f"Loaded design '{spec.name}' with {len(spec.components)} component(s)")
        return spec


class StaticDesignSource:
    """DesignSource returning a spec built in code."""

    def __init__(self, spec: DesignSpec | None):
        self.spec = spec

    async def extract(self) -> DesignSpec | None:
        return self.spec
