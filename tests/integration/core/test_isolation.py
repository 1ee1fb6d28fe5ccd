"""
Integration tests for data isolation enforcement in the core module.
"""

import pytest
from django.apps import apps
from django.db import connection, models

from core.context import reset_current_business_id, set_current_business_id
from core.models import TenantAwareManager, TenantAwareModel
from loyalty.models import Visit
from tests.factories.loyalty import VisitFactory
from tests.factories.users import BusinessFactory


@pytest.fixture
def concrete_tenant_model():
    """
    Creates a temporary concrete model based on the abstract TenantAwareModel.
    """

    class ServiceNote(TenantAwareModel):
        name = models.CharField(max_length=255)
        objects = TenantAwareManager()

        class Meta:
            app_label = "core"

    with connection.schema_editor() as schema_editor:
        schema_editor.create_model(ServiceNote)

    yield ServiceNote

    with connection.schema_editor() as schema_editor:
        schema_editor.delete_model(ServiceNote)

    # Avoids "RuntimeWarning: Model was already registered" on the next run
    try:
        del apps.all_models["core"]["servicenote"]
        apps.clear_cache()
    except KeyError:
        pass


@pytest.mark.django_db(transaction=True)
def test_manager_enforces_tenant_isolation(concrete_tenant_model):
    """
    TenantAwareManager filters records by the active business context,
    and new records pick up that business on save.
    """
    ServiceNote = concrete_tenant_model

    business_a = BusinessFactory()
    business_b = BusinessFactory()

    set_current_business_id(business_a.id)
    note_a = ServiceNote.objects.create(name="Note A")

    set_current_business_id(business_b.id)
    ServiceNote.objects.create(name="Note B")

    reset_current_business_id()
    set_current_business_id(business_a.id)

    queryset_a = ServiceNote.objects.all()

    assert queryset_a.count() == 1
    assert queryset_a.first().id == note_a.id
    assert queryset_a.first().business_id == business_a.id

    reset_current_business_id()


@pytest.mark.django_db(transaction=True)
def test_manager_returns_all_records_when_no_tenant_is_active(concrete_tenant_model):
    """
    Scenario: System access (Celery task, management command or customer request).
    Context: No business is set.
    Expected: Manager returns records of every business.
    """
    ServiceNote = concrete_tenant_model

    business_a = BusinessFactory()
    business_b = BusinessFactory()

    set_current_business_id(business_a.id)
    ServiceNote.objects.create(name="Note A")

    set_current_business_id(business_b.id)
    ServiceNote.objects.create(name="Note B")

    reset_current_business_id()

    assert ServiceNote.objects.count() == 2


def test_visit_manager_is_scoped_but_base_manager_is_not():
    mine = VisitFactory()
    VisitFactory()

    set_current_business_id(mine.business_id)

    assert list(Visit.objects.values_list("pk", flat=True)) == [mine.pk]
    assert Visit._base_manager.count() == 2


def test_explicit_business_is_not_overwritten_by_context():
    other = BusinessFactory()
    set_current_business_id(other.id)

    visit = VisitFactory()

    assert visit.business_id != other.id
