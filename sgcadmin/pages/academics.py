"""Departments, classes, sections and groups"""

from sgcadmin.forms.academics import ClassForm, DepartmentForm, GroupForm, SectionForm
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import CLASSES, DEPARTMENTS, GROUPS, SECTIONS


class DepartmentsPage(ListPage):
    descriptor = DEPARTMENTS
    form_class = DepartmentForm


class ClassesPage(ListPage):
    descriptor = CLASSES
    form_class = ClassForm


class SectionsPage(ListPage):
    descriptor = SECTIONS
    form_class = SectionForm


class GroupsPage(ListPage):
    descriptor = GROUPS
    form_class = GroupForm
