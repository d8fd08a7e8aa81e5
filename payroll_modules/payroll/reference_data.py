"""
Tax Table Installer - Writes a jurisdiction's bracket tables as reference data.

The bracket tables authored in ``payroll_config/sets/*.yaml`` are copied into
``payroll_tax_brackets`` so a payroll run reads one consistent snapshot per
fiscal year.  Installing is idempotent: a (fiscal_year, marital_status) table
that already exists is left untouched unless ``replace=True``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from payroll_config.schema import JurisdictionConfig
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.orm import TaxBracketModel

logger = get_logger("modules.payroll.reference_data")


class TaxTableInstaller:
    """Installs bracket tables from a ``JurisdictionConfig``."""

    def __init__(self, session: Session):
        self._session = session

    def install(
        self,
        config: JurisdictionConfig,
        actor_id: UUID,
        replace: bool = False,
    ) -> int:
        """
        Install every bracket table of ``config``.  Does not commit.

        Returns:
            Number of bracket rows written.
        """
        written = 0
        for (fiscal_year, marital_status), brackets in sorted(config.tax_tables.items()):
            exists = self._session.scalar(
                select(TaxBracketModel.id).where(
                    TaxBracketModel.fiscal_year == fiscal_year,
                    TaxBracketModel.marital_status == marital_status,
                ).limit(1)
            )
            if exists is not None:
                if not replace:
                    continue
                self._session.execute(
                    delete(TaxBracketModel).where(
                        TaxBracketModel.fiscal_year == fiscal_year,
                        TaxBracketModel.marital_status == marital_status,
                    )
                )
            for bracket in brackets:
                self._session.add(
                    TaxBracketModel(
                        fiscal_year=fiscal_year,
                        marital_status=marital_status,
                        min_amount=bracket.min_amount,
                        max_amount=bracket.max_amount,
                        rate=bracket.rate,
                        created_by_id=actor_id,
                    )
                )
                written += 1
        self._session.flush()
        logger.info(
            "tax_tables_installed",
            extra={
                "config_name": config.name,
                "config_checksum": config.checksum,
                "rows_written": written,
            },
        )
        return written
