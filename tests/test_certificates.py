"""Emissão e verificação de certificados."""

import re
from datetime import datetime, timedelta

import pytest

from portal.core.exceptions import CertificateNotEligibleError
from portal.models import Enrollment
from portal.services import certificates, workflow
from tests.conftest import OTHER_CPF, VALID_CPF

CODE_PATTERN = re.compile(r"^CERT-[0-9A-Z]+-[0-9A-Z]{6}$")


async def enrolled(db, course, cpf=VALID_CPF, days_ago=0):
    """Pré-matrícula paga, com órgão confirmado e matrícula ativa"""
    pre = await workflow.submit_pre_enrollment(db, {
        "course_id": course.id,
        "full_name": "Paula Lima",
        "cpf": cpf,
        "email": f"{cpf}@example.com",
    })
    await workflow.confirm_payment(db, pre)
    await workflow.report_organ_approval(db, pre)
    await workflow.confirm_organ_approval(db, pre)
    enrollment = await workflow.get_or_create_enrollment(db, pre)
    await workflow.activate_enrollment(db, enrollment)

    enrollment = await db.get(Enrollment, enrollment.id)
    enrollment.enrollment_date = datetime.utcnow() - timedelta(days=days_ago)
    await db.commit()
    return pre


def test_code_format():
    assert CODE_PATTERN.match(certificates.generate_certificate_code())


def test_base36():
    assert certificates._to_base36(0) == "0"
    assert certificates._to_base36(35) == "Z"
    assert certificates._to_base36(36) == "10"


async def test_codes_are_distinct_for_different_enrollments(db, course):
    first = await certificates.issue_certificate(db, await enrolled(db, course), by_staff=True)
    second = await certificates.issue_certificate(db, await enrolled(db, course, cpf=OTHER_CPF), by_staff=True)
    assert first.certificate_code != second.certificate_code


async def test_not_available_while_course_runs(db, course):
    pre = await enrolled(db, course, days_ago=10)
    availability = await certificates.check_certificate_availability(db, pre)
    assert availability["available"] is False
    assert availability["available_from"] is not None

    with pytest.raises(CertificateNotEligibleError):
        await certificates.issue_certificate(db, pre)


async def test_available_day_after_course_end(db, course):
    pre = await enrolled(db, course, days_ago=course.duration_days + 1)
    availability = await certificates.check_certificate_availability(db, pre)
    assert availability["available"] is True

    certificate = await certificates.issue_certificate(db, pre)
    assert certificate.student_cpf == VALID_CPF
    assert certificate.course_hours == 120
    assert certificate.verification_url.endswith(f"/verify-certificate/{certificate.certificate_code}")


async def test_staff_can_issue_before_release(db, course):
    pre = await enrolled(db, course)
    certificate = await certificates.issue_certificate(db, pre, by_staff=True)
    again = await certificates.issue_certificate(db, pre, by_staff=True)
    assert again.id == certificate.id


async def test_without_organ_confirmation_not_available(db, course):
    pre = await workflow.submit_pre_enrollment(db, {
        "course_id": course.id, "full_name": "Paula Lima", "cpf": VALID_CPF, "email": "p@example.com",
    })
    availability = await certificates.check_certificate_availability(db, pre)
    assert availability == {"available": False, "reason": "Aprovação do órgão não confirmada", "available_from": None}


async def test_verify_normalizes_code(db, course):
    pre = await enrolled(db, course)
    certificate = await certificates.issue_certificate(db, pre, by_staff=True)
    await db.commit()

    result = await certificates.verify_certificate(db, f"  {certificate.certificate_code.lower()} ")
    assert result["found"] is True
    assert result["certificate"]["student_name"] == "Paula Lima"


@pytest.mark.parametrize("code", ["", None, "   ", "CERT-NAO-EXISTE"])
async def test_verify_not_found_is_not_an_error(db, code):
    assert await certificates.verify_certificate(db, code) == {"found": False, "certificate": None}


async def test_deactivated_certificate_no_longer_verifies(db, course):
    pre = await enrolled(db, course)
    certificate = await certificates.issue_certificate(db, pre, by_staff=True)
    await certificates.deactivate_certificate(db, certificate.certificate_code)
    await db.commit()

    result = await certificates.verify_certificate(db, certificate.certificate_code)
    assert result["found"] is False
