"""Enums for the Clinic Registry application."""

from enum import Enum


class PersonType(str, Enum):
    """Kind of legal person behind a clinic or dentist."""

    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"


class TaxIdType(str, Enum):
    """Brazilian tax id kinds."""

    CPF = "CPF"  # individuals
    CNPJ = "CNPJ"  # companies

    @classmethod
    def for_person_type(cls, person_type: PersonType) -> "TaxIdType":
        if person_type == PersonType.COMPANY:
            return cls.CNPJ
        return cls.CPF


class RecordStatus(str, Enum):
    """Lifecycle status of soft-deletable records."""

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"
