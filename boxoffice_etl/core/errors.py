# boxoffice_etl/core/errors.py
from __future__ import annotations


class BoxOfficeError(RuntimeError):
    """Base commune des erreurs du package."""

    # renseigné par le pipeline quand l'erreur traverse un run
    execution_id = None


class NoMatchingFormat(BoxOfficeError):
    """Aucune stratégie (ni l'extraction de secours) n'a produit de ligne : rien n'est ingéré."""


class FieldDecodeMismatch(BoxOfficeError):
    """Une ligne ne se décode pas selon le schéma attendu. Toujours locale à la ligne."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line[:80]!r}")
        self.line = line
        self.reason = reason


class WarehouseBatchFailure(BoxOfficeError):
    """Une requête batch vers l'entrepôt a échoué : le run entier est en échec."""

    def __init__(self, statement: str, cause: Exception):
        super().__init__(f"{statement} failed: {cause}")
        self.statement = statement
