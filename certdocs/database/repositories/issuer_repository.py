import psycopg
from psycopg.rows import dict_row

from certdocs.database.connection import get_connection
from certdocs.database.models import Issuer
from certdocs.processor.exceptions import IssuerNotFoundError, RegistryLookupError


class IssuerRepository:
    """Database operations for the entities table."""

    def find_by_id(self, entity_id: str) -> Issuer:
        """Find an issuing entity by ID.

        Raises:
            IssuerNotFoundError: if no entity with this ID exists.
            RegistryLookupError: if the query fails.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        "SELECT id, slug, name FROM entities WHERE id::text = %s",
                        (entity_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise RegistryLookupError(f"Issuer lookup failed for {entity_id}: {exc}") from exc

        if row is None:
            raise IssuerNotFoundError(f"Issuer {entity_id} not found")

        return Issuer(id=str(row["id"]), slug=row["slug"], name=row["name"])
