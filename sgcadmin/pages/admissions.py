"""Admissions list (read only here; admission intake lives elsewhere)"""

from sgcadmin.pages.base import ListPage
from sgcadmin.resources import ADMISSIONS


class AdmissionsPage(ListPage):
    descriptor = ADMISSIONS
