"""Atom XML Output Sink for publishing feeds as Atom XML files."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from atomgen.api import get_atom_string
from atomgen.core.config import AtomSettings
from atomgen.core.ids import IdGenerator

logger = logging.getLogger(__name__)


class AtomFileSink:
    """Publishes a feed descriptor as an Atom XML file."""

    def __init__(
        self,
        output_path: Path,
        *,
        settings: AtomSettings | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        """Initialize the Atom XML output sink.

        Args:
            output_path: Path where the Atom XML file will be written
            settings: Validation and rendering settings
            id_generator: Fallback id source, see ``AtomSettings.fallback_ids``

        """
        self.output_path = Path(output_path)
        self.settings = settings
        self.id_generator = id_generator

    def publish(self, options: Mapping[str, Any]) -> Path:
        """Validate, render and write the feed.

        Creates parent directories if they don't exist.
        Overwrites existing file if present.

        """
        xml_output = get_atom_string(options, settings=self.settings, id_generator=self.id_generator)

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(xml_output, encoding="utf-8")
        logger.info("Wrote Atom feed to %s", self.output_path)
        return self.output_path
