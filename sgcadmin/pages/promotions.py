"""Student promotion: the operation form plus its history"""

from typing import Any

from sgcadmin.exceptions import SGCAdminError
from sgcadmin.forms.base import FormOutcome
from sgcadmin.forms.promotions import PromotionForm
from sgcadmin.pages.base import ListPage
from sgcadmin.resources import PROMOTIONS


class PromotionsPage(ListPage):
    descriptor = PROMOTIONS
    form_class = PromotionForm

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.form = PromotionForm(self.api, session=self.session)

    async def open(self) -> None:
        await super().open()
        await self.form.load_options()

    async def choose(self, name: str, value: Any) -> None:
        await self.form.choose(name, value)

    async def fetch_students(self) -> bool:
        """Load FROM students into the form; problems go to the banner"""
        try:
            await self.form.fetch_students()
        except SGCAdminError as e:
            self.banners.error(e.message)
            return False
        return True

    async def run(self) -> FormOutcome:
        outcome = await self.submit(self.form)
        if outcome.ok and self.form.get("from.section"):
            # Processed students are no longer enrolled where they were
            await self.fetch_students()
        return outcome
