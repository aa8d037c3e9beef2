# accounts/tests/test_permissions_defaults.py

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import TestCase

from accounts.authz import ActorContext, actor_for, owner_actor, require
from accounts.commands import add_user_to_company, create_company, switch_active_company
from accounts.models import AppPermission, Company, CompanyMembership, CompanyMembershipPermission
from accounts.permissions import grant_role_defaults
from accounting.models import Account, AccountRoleMapping
from events.models import BusinessEvent
from events.types import EventTypes


User = get_user_model()


class TestPermissionDefaults(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="C1", slug="c1")
        self.owner = User.objects.create_user(email="o@test.com", password="pass12345", name="Owner")
        self.user = User.objects.create_user(email="u@test.com", password="pass12345", name="User")
        self.admin = User.objects.create_user(email="a@test.com", password="pass12345", name="Admin")

        self.owner_m = CompanyMembership.objects.create(user=self.owner, company=self.company, role="OWNER", is_active=True)
        self.user_m = CompanyMembership.objects.create(user=self.user, company=self.company, role="USER", is_active=True)
        self.admin_m = CompanyMembership.objects.create(user=self.admin, company=self.company, role="ADMIN", is_active=True)

        grant_role_defaults(self.owner_m, granted_by=self.owner)
        grant_role_defaults(self.user_m, granted_by=self.owner)
        grant_role_defaults(self.admin_m, granted_by=self.owner)

    def _actor(self, user, membership):
        perms = frozenset(membership.permissions.values_list("code", flat=True))
        return ActorContext(user=user, company=self.company, membership=membership, perms=perms)

    def test_user_cannot_post_or_close(self):
        actor = self._actor(self.user, self.user_m)
        self.assertFalse(actor.has("company.manage_users"))
        self.assertFalse(actor.has("journal.post"))
        self.assertFalse(actor.has("periods.close"))
        self.assertFalse(actor.has("pos.manage_methods"))

    def test_user_runs_the_shop_floor(self):
        actor = self._actor(self.user, self.user_m)
        for code in ("sales.manage", "payments.record", "pos.sell", "pos.manage_sessions", "inventory.transfer"):
            self.assertTrue(actor.has(code), code)

    def test_owner_is_implicitly_allowed(self):
        actor = self._actor(self.owner, self.owner_m)
        self.assertTrue(actor.has("some.future_permission"))

    def test_admin_cannot_reopen_periods(self):
        actor = self._actor(self.admin, self.admin_m)
        self.assertTrue(actor.has("periods.close"))
        self.assertFalse(actor.has("periods.reopen"))

    def test_admin_revocation_actually_blocks(self):
        perm = AppPermission.objects.get(code="company.manage_users")
        CompanyMembershipPermission.objects.filter(membership=self.admin_m, permission=perm).delete()

        actor = self._actor(self.admin, self.admin_m)

        self.assertFalse(actor.has("company.manage_users"))

    def test_inactive_membership_has_nothing(self):
        self.user_m.is_active = False
        self.user_m.save()
        actor = self._actor(self.user, self.user_m)
        self.assertFalse(actor.has("company.view"))

    def test_require_raises(self):
        actor = self._actor(self.user, self.user_m)
        with self.assertRaises(PermissionDenied):
            require(actor, "journal.post")

    def test_grant_is_idempotent(self):
        self.assertEqual(grant_role_defaults(self.user_m), 0)


class TestAddUserToCompanyGrantsDefaults(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="C1", slug="c1")

        self.owner = User.objects.create_user(email="o@test.com", password="pass12345", name="Owner")
        self.owner_m = CompanyMembership.objects.create(
            user=self.owner, company=self.company, role="OWNER", is_active=True
        )
        grant_role_defaults(self.owner_m, granted_by=self.owner)
        self.actor = actor_for(self.owner, self.company)

        self.other = User.objects.create_user(email="u@test.com", password="pass12345", name="Other")

    def test_add_user_grants_defaults(self):
        res = add_user_to_company(self.actor, user_id=self.other.id, role="USER")
        self.assertTrue(res.success)

        m = CompanyMembership.objects.get(user=self.other, company=self.company)
        codes = set(m.permissions.values_list("code", flat=True))

        self.assertIn("company.view", codes)
        self.assertIn("pos.sell", codes)
        self.assertNotIn("journal.post", codes)

    def test_existing_member_is_refused(self):
        add_user_to_company(self.actor, user_id=self.other.id, role="USER")
        res = add_user_to_company(self.actor, user_id=self.other.id, role="USER")
        self.assertFalse(res.success)

    def test_reactivate_resets_role(self):
        m = CompanyMembership.objects.create(
            user=self.other,
            company=self.company,
            role="ADMIN",
            is_active=False,
        )

        res = add_user_to_company(self.actor, user_id=self.other.id, role="VIEWER")
        self.assertTrue(res.success)

        m.refresh_from_db()
        self.assertTrue(m.is_active)
        self.assertEqual(m.role, "VIEWER")
        self.assertFalse(m.permissions.filter(code="sales.manage").exists())

        ev = BusinessEvent.objects.filter(
            aggregate_type="CompanyMembership",
            aggregate_id=str(m.public_id),
            event_type=EventTypes.MEMBERSHIP_CREATED,
        ).first()
        self.assertIsNotNone(ev)

    def test_user_cannot_add_members(self):
        add_user_to_company(self.actor, user_id=self.other.id, role="USER")
        staff = actor_for(self.other, self.company)
        third = User.objects.create_user(email="t@test.com", password="pass12345", name="Third")
        with self.assertRaises(PermissionDenied):
            add_user_to_company(staff, user_id=third.id)


class TestCreateCompany(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="o@test.com", password="pass12345", name="Owner")

    def test_seeds_chart_and_roles(self):
        res = create_company(self.user, "Toko Makmur")

        self.assertTrue(res.success, res.error)
        company = res.data["company"]
        self.assertEqual(company.slug, "toko-makmur")
        self.assertTrue(Account.objects.filter(company=company, code="1-1001").exists())
        self.assertEqual(
            AccountRoleMapping.objects.get(company=company, role="receivable").account.code,
            "1-2100",
        )
        self.user.refresh_from_db()
        self.assertEqual(self.user.active_company, company)
        self.assertEqual(owner_actor(company).user, self.user)

    def test_slug_collision_gets_suffix(self):
        create_company(self.user, "Toko Makmur")
        second = create_company(self.user, "Toko Makmur").data["company"]
        self.assertEqual(second.slug, "toko-makmur-1")

    def test_name_required(self):
        self.assertFalse(create_company(self.user, "  ").success)

    def test_switch_requires_membership(self):
        mine = create_company(self.user, "Toko A").data["company"]
        stranger = User.objects.create_user(email="s@test.com", password="pass12345", name="S")
        theirs = create_company(stranger, "Toko B").data["company"]

        self.assertFalse(switch_active_company(self.user, theirs.id).success)

        create_company(self.user, "Toko C")
        res = switch_active_company(self.user, mine.id)
        self.assertTrue(res.success)
        self.user.refresh_from_db()
        self.assertEqual(self.user.active_company_id, mine.id)
