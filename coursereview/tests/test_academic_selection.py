"""
Academic selection tests

Coverage:
- Masters selection: success, each precondition in order, immutability
- Lost race on the conditional update
- Program specialization selection and cross-program rejection
- Confirmation email is best effort
- Account eligibility view
"""
import pytest
from sqlalchemy import select, update

from coursereview.exceptions import (
    InvalidSelectionError,
    NotEligibleError,
    SelectionAlreadyMadeError,
    SpecializationMismatchError,
    SpecializationRequiredError,
    UserNotFoundError,
)
from coursereview.orm.user import User
from coursereview.services.academic_selection_service import (
    SelectionState,
    get_selection_state,
    get_user_with_eligibility,
    select_masters_degree,
    select_program_specialization,
)
from coursereview.services.email_templates import EmailTemplateKind
from coursereview.tests.conftest import RecordingDispatcher, make_user


async def _stored_selection(db, user_id):
    result = await db.execute(
        select(User.masters_degree_id, User.specialization_id, User.program_specialization_id)
        .where(User.id == user_id)
    )
    return tuple(result.one())


# =============================================================================
# Masters degree
# =============================================================================

@pytest.mark.asyncio
async def test_select_masters_degree_success(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    result = await select_masters_degree(
        db, user.id, catalog.tcscm, catalog.specs.tcscm_ds, dispatcher=dispatcher
    )

    assert result.masters_degree_id == catalog.tcscm
    assert result.specialization_id == catalog.specs.tcscm_ds
    assert result.session_stale is True
    assert await _stored_selection(db, user.id) == (catalog.tcscm, catalog.specs.tcscm_ds, None)

    recipient, kind, variables = dispatcher.sent[0]
    assert recipient == user.email
    assert kind == EmailTemplateKind.academic_selection
    assert variables["selection_name"] == "Computer Science"
    assert variables["specialization_name"] == "Data Science"


@pytest.mark.asyncio
async def test_masters_without_specializations_needs_none(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    result = await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=dispatcher)

    assert result.masters_degree_id == catalog.tebsm
    assert result.specialization_id is None


@pytest.mark.asyncio
async def test_second_masters_selection_rejected(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    user_id = user.id
    await select_masters_degree(db, user_id, catalog.tebsm, dispatcher=dispatcher)

    with pytest.raises(SelectionAlreadyMadeError):
        await select_masters_degree(
            db, user_id, catalog.tcscm, catalog.specs.tcscm_cs, dispatcher=dispatcher
        )

    assert await _stored_selection(db, user_id) == (catalog.tebsm, None, None)
    assert len(dispatcher.sent) == 1


@pytest.mark.asyncio
async def test_lost_race_on_conditional_update(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    user_id = user.id

    # Another request commits first; this session still holds the NULL it loaded
    await db.execute(
        update(User.__table__)
        .where(User.__table__.c.id == user_id)
        .values(masters_degree_id=catalog.tebsm)
    )
    await db.commit()
    assert user.masters_degree_id is None

    with pytest.raises(SelectionAlreadyMadeError):
        await select_masters_degree(
            db, user_id, catalog.tcscm, catalog.specs.tcscm_cs, dispatcher=dispatcher
        )

    assert await _stored_selection(db, user_id) == (catalog.tebsm, None, None)
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_unknown_user(db, catalog, dispatcher):
    with pytest.raises(UserNotFoundError):
        await select_masters_degree(db, "missing", catalog.tcscm, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_direct_masters_student_not_eligible(db, catalog, dispatcher):
    user = await make_user(db, masters_degree_id=catalog.tcscm)

    with pytest.raises(NotEligibleError):
        await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_integrated_masters_program_not_eligible(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.cdate)

    with pytest.raises(NotEligibleError):
        await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_eligibility_checked_before_target(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.cdate)

    with pytest.raises(NotEligibleError):
        await select_masters_degree(db, user.id, 99999, dispatcher=dispatcher)


@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["missing", "base"])
async def test_invalid_target_degree(db, catalog, dispatcher, target):
    user = await make_user(db, program_id=catalog.tidab)
    target_id = 99999 if target == "missing" else catalog.cdate

    with pytest.raises(InvalidSelectionError):
        await select_masters_degree(db, user.id, target_id, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_specialization_required_when_degree_has_them(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(SpecializationRequiredError):
        await select_masters_degree(db, user.id, catalog.tcscm, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_unknown_specialization(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(InvalidSelectionError):
        await select_masters_degree(db, user.id, catalog.tcscm, 99999, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_specialization_of_other_program_rejected(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    user_id = user.id

    with pytest.raises(SpecializationMismatchError):
        await select_masters_degree(
            db, user_id, catalog.tcscm, catalog.specs.cdate_ml, dispatcher=dispatcher
        )

    assert await _stored_selection(db, user_id) == (None, None, None)


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_selection(db, catalog):
    user = await make_user(db, program_id=catalog.tidab)
    failing = RecordingDispatcher(result=False)

    result = await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=failing)

    assert result.masters_degree_id == catalog.tebsm
    assert len(failing.sent) == 1


# =============================================================================
# Program specialization
# =============================================================================

@pytest.mark.asyncio
async def test_select_program_specialization(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    result = await select_program_specialization(
        db, user.id, catalog.specs.tidab_hw, dispatcher=dispatcher
    )

    assert result.program_specialization_id == catalog.specs.tidab_hw
    assert await _stored_selection(db, user.id) == (None, None, catalog.specs.tidab_hw)
    assert dispatcher.sent[0][2]["specialization_name"] == "Hardware"


@pytest.mark.asyncio
async def test_program_specialization_is_one_time(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    user_id = user.id
    await select_program_specialization(db, user_id, catalog.specs.tidab_hw, dispatcher=dispatcher)

    with pytest.raises(SelectionAlreadyMadeError):
        await select_program_specialization(db, user_id, catalog.specs.tidab_sw, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_program_specialization_from_other_program_rejected(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)

    with pytest.raises(SpecializationMismatchError):
        await select_program_specialization(db, user.id, catalog.specs.cdate_cs, dispatcher=dispatcher)


@pytest.mark.asyncio
async def test_program_specialization_requires_base_program(db, catalog, dispatcher):
    user = await make_user(db, masters_degree_id=catalog.tcscm)

    with pytest.raises(NotEligibleError):
        await select_program_specialization(db, user.id, catalog.specs.tcscm_cs, dispatcher=dispatcher)


# =============================================================================
# State and account view
# =============================================================================

@pytest.mark.asyncio
async def test_selection_state(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=dispatcher)

    state = await get_selection_state(db, user.id)

    assert isinstance(state, SelectionState)
    assert state.masters_degree.is_set and state.masters_degree.value == catalog.tebsm
    assert not state.specialization.is_set
    assert not state.program_specialization.is_set


@pytest.mark.asyncio
async def test_account_eligibility(db, catalog):
    tidab_user = await make_user(db, program_id=catalog.tidab)
    cdate_user = await make_user(db, program_id=catalog.cdate)
    masters_user = await make_user(
        db, masters_degree_id=catalog.tcscm, specialization_id=catalog.specs.tcscm_ds
    )

    tidab = await get_user_with_eligibility(db, tidab_user.id)
    cdate = await get_user_with_eligibility(db, cdate_user.id)
    masters = await get_user_with_eligibility(db, masters_user.id)

    assert tidab["can_select_masters_degree"] is True
    assert tidab["can_select_program_specialization"] is True
    assert cdate["can_select_masters_degree"] is False
    assert masters["can_select_masters_degree"] is False
    assert masters["can_select_program_specialization"] is False
    assert masters["specialization_name"] == "Data Science"
    assert masters["masters_degree_code"] == "TCSCM"


@pytest.mark.asyncio
async def test_account_flags_close_after_selections(db, catalog, dispatcher):
    user = await make_user(db, program_id=catalog.tidab)
    await select_masters_degree(db, user.id, catalog.tebsm, dispatcher=dispatcher)
    await select_program_specialization(db, user.id, catalog.specs.tidab_sw, dispatcher=dispatcher)

    account = await get_user_with_eligibility(db, user.id)

    assert account["can_select_masters_degree"] is False
    assert account["can_select_program_specialization"] is False
    assert account["program_specialization_name"] == "Software"
