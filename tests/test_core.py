"""Tests for the logging setup and the camelCase schema base."""

import logging
import warnings
from types import SimpleNamespace
from uuid import uuid4

from app.core.logger import setup_logging
from app.schemas.common import CamelModel


class TestSetupLogging:
    def test_level_can_be_overridden(self):
        logger = setup_logging("debug")
        try:
            assert logger.name == "clinicbook"
            assert logger.level == logging.DEBUG
        finally:
            setup_logging()

    def test_repeated_setup_keeps_one_handler(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1


class TestCamelModel:
    def test_subclass_definition_emits_no_deprecation_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")

            class Visit(CamelModel):
                patient_id: str

        assert Visit.model_config["populate_by_name"] is True

    def test_accepts_both_names_and_dumps_camel_case(self):
        class Visit(CamelModel):
            patient_id: str
            merge_notes: str | None = None

        by_alias = Visit.model_validate({"patientId": "p1", "mergeNotes": "x"})
        by_name = Visit(patient_id="p1")

        assert by_alias.patient_id == by_name.patient_id == "p1"
        assert by_alias.model_dump(by_alias=True) == {"patientId": "p1", "mergeNotes": "x"}

    def test_reads_from_attributes(self):
        class Visit(CamelModel):
            patient_id: str

        row = SimpleNamespace(patient_id=str(uuid4()))

        assert Visit.model_validate(row).patient_id == row.patient_id
