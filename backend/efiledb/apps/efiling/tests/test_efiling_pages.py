from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb.apps.efiling import marking, models, pages, schemas
from efiledb.apps.templates import models as template_models


def _add_page(db_session, file, actor, title="Note sheet"):
    page = pages.add_page(db_session, file=file, data=schemas.PageCreate(title=title), actor=actor)
    db_session.commit()
    return page


def test_pages_append_and_never_renumber(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    second = _add_page(db_session, file, creator)
    assert second.page_number == 2
    assert file.page_count == 2

    pages.delete_page(db_session, file=file, page_id=second.id, actor=creator)
    db_session.commit()
    assert file.page_count == 1

    third = _add_page(db_session, file, creator, title="Revised note")
    assert third.page_number == 3

    listing = pages.list_pages(db_session, file)
    assert [page.page_number for page in listing.pages] == [1, 3]
    assert {addition.addition_type for addition in listing.additions} == {"CREATOR_PAGE"}


def test_last_page_cannot_be_deleted(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    only = db_session.query(models.DocumentPage).filter_by(file_id=file.id).one()

    with pytest.raises(HTTPException) as exc:
        pages.delete_page(db_session, file=file, page_id=only.id, actor=creator)

    assert exc.value.status_code == 400
    assert exc.value.detail == pages.LAST_PAGE_DETAIL


def test_update_page_flattens_single_line_fields(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    page = db_session.query(models.DocumentPage).filter_by(file_id=file.id).one()

    updated = pages.update_page(
        db_session,
        file=file,
        page_id=page.id,
        data=schemas.PageUpdate(
            content=schemas.PageContent(
                title="<b>Estimate</b> for <i>block 7</i>",
                subject="<p>Road&nbsp;repair</p>",
                matter="<p>Body</p>",
            )
        ),
        actor=creator,
    )

    assert updated.content["title"] == "Estimate for block 7"
    assert updated.content["subject"] == "Road repair"
    assert updated.content["matter"] == "<p>Body</p>"
    assert updated.title == "Estimate for block 7"


def test_se_adds_page_while_holding_file(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    se = make_user("SE_WATER")
    file = make_file(creator)
    sign_file(file, creator)
    marking.mark_to(db_session, file=file, actor=creator, user_ids=[se.id])
    db_session.commit()

    page = _add_page(db_session, file, se, title="SE remarks")

    addition = db_session.query(models.PageAddition).filter_by(page_id=page.id).one()
    assert addition.addition_type == "SE_PAGE"
    assert addition.role_code == "SE_WATER"

    with pytest.raises(HTTPException) as exc:
        _add_page(db_session, file, creator)
    assert exc.value.status_code == 403


def test_returned_file_keeps_old_pages_read_only(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    se = make_user("SE")
    file = make_file(creator)
    first = db_session.query(models.DocumentPage).filter_by(file_id=file.id).one()
    sign_file(file, creator)
    marking.mark_to(db_session, file=file, actor=creator, user_ids=[se.id])
    db_session.commit()
    sign_file(file, se)
    marking.mark_to(db_session, file=file, actor=se, user_ids=[creator.id])
    db_session.commit()

    update = schemas.PageUpdate(content=schemas.PageContent(title="Changed"))
    with pytest.raises(HTTPException) as exc:
        pages.update_page(db_session, file=file, page_id=first.id, data=update, actor=creator)
    assert exc.value.status_code == 403

    fresh = _add_page(db_session, file, creator, title="Compliance note")
    updated = pages.update_page(db_session, file=file, page_id=fresh.id, data=update, actor=creator)
    assert updated.content["title"] == "Changed"


def test_apply_template_merges_content_and_counts_use(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    page = db_session.query(models.DocumentPage).filter_by(file_id=file.id).one()
    template = template_models.DocumentTemplate(
        name="Estimate note",
        title="Estimate",
        subject="",
        main_content="First paragraph\n\nSecond line",
        created_by=creator.id,
    )
    db_session.add(template)
    db_session.commit()

    page = pages.apply_template(
        db_session, file=file, page_id=page.id, template_id=template.id, actor=creator
    )

    assert page.content["title"] == "Estimate"
    assert page.content["subject"] == file.subject
    assert page.content["matter"] == "<p>First paragraph</p><p>Second line</p>"
    assert template.usage_count == 1
    assert template.last_used_at is not None


def test_save_document_bumps_version(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    with pytest.raises(HTTPException) as exc:
        pages.get_document(db_session, file)
    assert exc.value.status_code == 404

    first = pages.save_document(
        db_session, file=file, data=schemas.DocumentSave(content={"pages": []}), actor=creator
    )
    second = pages.save_document(
        db_session, file=file, data=schemas.DocumentSave(content={"pages": [1]}), actor=creator
    )
    db_session.commit()

    assert first.id == second.id
    assert second.version == 2
    assert pages.get_document(db_session, file).content == {"pages": [1]}
