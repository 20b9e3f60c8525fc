"""
Convert
One-off migration of existing records to their protected form.

Every stored record is re-saved through Model.save(), which runs the
pre-save hooks: cleartext PII fields get ciphered, cleartext passwords
get hashed (existing bcrypt hashes are left alone).

Progress goes either to an emitter, as "docs" and "progress" events, or
to a console progress bar on stderr.
"""

import logging
import math
import os
import sys
from typing import TextIO

from fieldcloak.errors import ConfigurationError
from fieldcloak.plugin import was_registered_on


logger = logging.getLogger(__name__)

BATCH_SIZE = 10
DEFAULT_COLUMNS = 80
MAX_BAR_COLUMNS = 100


def _terminal_columns(output: TextIO) -> int | None:
    try:
        return os.get_terminal_size(output.fileno()).columns or None
    except (AttributeError, OSError, ValueError):
        return None


class ProgressBar:
    """
    Console progress bar that only writes when its width grows.

        [==========================================]
    """

    def __init__(self, output: TextIO, columns: int | None):
        self.output = output
        self.width = (min(MAX_BAR_COLUMNS, columns) if columns else DEFAULT_COLUMNS) - 2
        self.drawn = 0

    def update(self, percentage: int) -> None:
        # Half-up rounding
        width = math.floor(percentage / 100 * self.width + 0.5)
        if width == self.drawn:
            return
        if self.drawn == 0:
            self.output.write("\n[")
        self.output.write("=" * (width - self.drawn))
        if percentage == 100:
            self.output.write("]\n")
        self.drawn = width


def convert_data_for_model(model, emitter=None, output: TextIO = None, columns: int = None) -> int:
    """
    Re-save every record of a model so its protected fields get converted.

    Meant to run once, on records stored before protection was registered.
    Password fields are left alone on later runs (existing hashes are
    detected), but ciphered fields would be ciphered again.

    Args:
        model: A Model whose schema went through mark_fields_as_pii().
        emitter: Optional object with an emit(event, value) method. Gets
            ("docs", converted_count) for every record and
            ("progress", percentage) whenever the percentage grows.
        output: Stream for the console progress bar (stderr by default),
            used when no emitter is given.
        columns: Display width for the bar. Detected from output if omitted.

    Returns:
        Number of converted records.

    Raises:
        ConfigurationError: If the model's schema is not protected.
    """
    if not was_registered_on(model):
        raise ConfigurationError(
            "\n\n".join([
                f"{model.name}’s schema did not register field protection.",
                "Make sure your model’s schema registers it, for instance:",
                "mark_fields_as_pii(schema, fields=..., key=..., password_fields=...)",
            ])
        )

    total = model.store.estimated_count()
    if total == 0:
        return total

    logger.info("Converting %d %s record(s)", total, model.name)

    bar = None
    if emitter is None:
        output = output if output is not None else sys.stderr
        bar = ProgressBar(output, columns if columns is not None else _terminal_columns(output))

    converted = 0
    old_percentage = 0
    for record in model.store.cursor(batch_size=BATCH_SIZE):
        model.save(record)
        converted += 1
        percentage = converted * 100 // total

        if emitter is not None:
            emitter.emit("docs", converted)
            if percentage > old_percentage:
                emitter.emit("progress", percentage)
        else:
            bar.update(percentage)
        old_percentage = percentage

    logger.info("Converted %d %s record(s)", converted, model.name)
    return converted
