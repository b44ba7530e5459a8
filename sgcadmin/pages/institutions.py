"""Institutions list (super admins only)"""

from sgcadmin.forms.institutions import InstitutionForm
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import INSTITUTIONS


class InstitutionsPage(ListPage):
    """Create, edit and activate/deactivate institutions. There is no delete."""
    descriptor = INSTITUTIONS
    form_class = InstitutionForm
