"""Example facts inserted by the migration seed step."""

import json
from pathlib import Path

from .store.models import FactInput

PRINTER_FACT = "Printer fact"
CAT_FACT = "Cat fact"

DEFAULT_CORPUS: tuple[FactInput, ...] = (
    FactInput("Printers respond most readily to names that end in an 'ee' sound.", PRINTER_FACT),
    FactInput("A printer has the power to sense earthquakes a full 10 minutes before they happen.", PRINTER_FACT),
    FactInput("Printers spend nearly a third of their waking hours cleaning their print heads.", PRINTER_FACT),
    FactInput("The first printer to jam on purpose did so in 1976.", PRINTER_FACT),
    FactInput("A group of printers is called a clowder.", PRINTER_FACT),
    FactInput("Printers can make over 100 different sounds, most of them while idle.", PRINTER_FACT),
    FactInput("Cats have 230 bones.", CAT_FACT),
    FactInput("A cat's nose print is unique, much like a human fingerprint.", CAT_FACT),
    FactInput("Cats sleep for around 13 to 16 hours a day.", CAT_FACT),
    FactInput("A group of kittens is called a kindle.", CAT_FACT),
)


def load_corpus(path: Path) -> tuple[FactInput, ...]:
    """Load a seed corpus from a JSON list of {"fact", "kind"} objects.

    Raises:
        ValueError: If the file is not a list of valid entries.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Seed file {path} must contain a JSON list")
    corpus = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"Seed file {path} contains a non-object entry: {item!r}")
        corpus.append(FactInput.from_dict(item))
    return tuple(corpus)
