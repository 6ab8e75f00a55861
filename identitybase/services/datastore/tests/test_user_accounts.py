"""Tests for the user account collections of the datastore."""

import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from mimesis import Person
from pytz import UTC

from .... import domain
from ....exceptions import InvalidRecord, NoSuchClaim, \
    NoSuchExternalAccount, NoSuchUserAccount, PersistenceError
from ....options import StoreOptions
from ... import datastore
from ..stores import UserAccountStore


class SetUpAccountMixin(object):
    """Mixin for creating a database with one user account."""

    def setUp(self):
        """Set up the database."""
        self.db_path = tempfile.mkdtemp()
        self.options = StoreOptions()
        self.engine = datastore.create_engine(
            f'sqlite:///{self.db_path}/test.db', self.options
        )
        datastore.migrate(self.engine, self.options)

        self.email = Person().email(unique=True)
        with self.store() as store:
            self.account = store.user_accounts.add(domain.UserAccount(
                email=self.email,
                password_hash='fakehash',
                verification_key='fookey',
                verification_purpose=1
            ))
            store.save_changes()

    def tearDown(self):
        """Drop the database."""
        self.engine.dispose()
        shutil.rmtree(self.db_path)

    def store(self):
        return UserAccountStore(self.engine, self.options)


class TestUserAccounts(SetUpAccountMixin, TestCase):
    """Load, update and remove user accounts."""

    def test_get(self):
        """Load an account by id."""
        with self.store() as store:
            account = store.user_accounts.get(self.account.id)
        self.assertEqual(account, self.account)
        self.assertEqual(account.created.tzinfo, UTC)

    def test_get_missing(self):
        with self.store() as store:
            with self.assertRaises(NoSuchUserAccount):
                store.user_accounts.get('nope')

    def test_find(self):
        """Find accounts by email and by verification key."""
        with self.store() as store:
            self.assertEqual(store.user_accounts.find_by_email(self.email),
                             self.account)
            self.assertEqual(
                store.user_accounts.find_by_verification_key('fookey'),
                self.account
            )
            self.assertIsNone(
                store.user_accounts.find_by_email('nobody@foo.test')
            )
            self.assertIsNone(
                store.user_accounts.find_by_verification_key('barkey')
            )

    def test_duplicate_email(self):
        with self.store() as store:
            store.user_accounts.add(domain.UserAccount(email=self.email))
            with self.assertRaises(PersistenceError):
                store.save_changes()

    def test_missing_email(self):
        with self.store() as store:
            with self.assertRaises(InvalidRecord):
                store.user_accounts.add(domain.UserAccount(email=''))

    def test_record_login(self):
        """Failed and successful logins are recorded."""
        then = datetime.now(tz=UTC) - timedelta(minutes=5)
        with self.store() as store:
            account = store.user_accounts.update(self.account._replace(
                last_failed_login_at=then,
                failed_login_count=1
            ))
            self.assertEqual(store.save_changes(), 1)
        self.assertEqual(account.version, 2)

        with self.store() as store:
            account = store.user_accounts.get(self.account.id)
        self.assertEqual(account.failed_login_count, 1)
        self.assertEqual(account.last_failed_login_at, then)
        self.assertEqual(account.version, 2)
        self.assertIsNotNone(account.updated)

    def test_login_time_with_offset(self):
        """A login time with an offset is kept as the same instant in UTC."""
        then = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        with self.store() as store:
            store.user_accounts.update(
                self.account._replace(last_login_at=then)
            )
            store.save_changes()

        with self.store() as store:
            account = store.user_accounts.get(self.account.id)
        self.assertEqual(account.last_login_at, then)
        self.assertEqual(account.last_login_at,
                         datetime(2024, 1, 1, 10, 0, tzinfo=UTC))
        self.assertEqual(account.last_login_at.tzinfo, UTC)

    def test_list(self):
        with self.store() as store:
            store.user_accounts.add(domain.UserAccount(email='a@foo.test'))
            store.save_changes()
            emails = [a.email for a in store.user_accounts.list()]
        self.assertEqual(emails, sorted([self.email, 'a@foo.test']))


class TestExternalAccounts(SetUpAccountMixin, TestCase):
    """Link external logins to a user account."""

    def setUp(self):
        """Link one external account."""
        super(TestExternalAccounts, self).setUp()
        with self.store() as store:
            self.external = store.external_accounts.add(domain.ExternalAccount(
                provider='orcid',
                subject='0000-0002-1825-0097',
                user_account_id=self.account.id,
                email=self.email
            ))
            store.save_changes()

    def test_get(self):
        with self.store() as store:
            external = store.external_accounts.get('orcid',
                                                   '0000-0002-1825-0097')
            self.assertIsNone(store.external_accounts.find('orcid', 'x'))
            with self.assertRaises(NoSuchExternalAccount):
                store.external_accounts.get('github', '0000-0002-1825-0097')
        self.assertEqual(external, self.external)

    def test_list_for_user(self):
        with self.store() as store:
            store.external_accounts.add(domain.ExternalAccount(
                provider='github',
                subject='12345',
                user_account_id=self.account.id
            ))
            store.save_changes()
            accounts = store.external_accounts.list_for_user(self.account.id)
        providers = [a.provider for a in accounts]
        self.assertEqual(providers, ['github', 'orcid'])

    def test_update(self):
        now = datetime.now(tz=UTC)
        with self.store() as store:
            store.external_accounts.update(
                self.external._replace(last_login_at=now)
            )
            self.assertEqual(store.save_changes(), 1)
            external = store.external_accounts.get('orcid',
                                                   '0000-0002-1825-0097')
        self.assertEqual(external.last_login_at, now)
        self.assertIsNotNone(external.updated)

    def test_change_owner(self):
        """An external account cannot be moved to another user."""
        with self.store() as store:
            with self.assertRaises(InvalidRecord):
                store.external_accounts.update(
                    self.external._replace(user_account_id='other')
                )

    def test_unknown_owner(self):
        with self.store() as store:
            store.external_accounts.add(domain.ExternalAccount(
                provider='github',
                subject='12345',
                user_account_id='nobody'
            ))
            with self.assertRaises(PersistenceError):
                store.save_changes()

    def test_remove(self):
        with self.store() as store:
            store.external_accounts.remove('orcid', '0000-0002-1825-0097')
            self.assertEqual(store.save_changes(), 1)
            self.assertEqual(
                store.external_accounts.list_for_user(self.account.id), []
            )
            self.assertIsNotNone(store.user_accounts.get(self.account.id))


class TestUserAccountClaims(SetUpAccountMixin, TestCase):
    """Claims attached to a user account."""

    def setUp(self):
        """Add a few claims."""
        super(TestUserAccountClaims, self).setUp()
        person = Person()
        with self.store() as store:
            for type, value in [('name', person.full_name()),
                                ('role', 'moderator'),
                                ('role', 'admin')]:
                store.user_account_claims.add(domain.UserAccountClaim(
                    user_account_id=self.account.id,
                    type=type,
                    value=value
                ))
            store.save_changes()

    def test_list_for_user(self):
        with self.store() as store:
            claims = store.user_account_claims.list_for_user(self.account.id)
            roles = store.user_account_claims.list_for_user(self.account.id,
                                                            type='role')
        self.assertEqual([c.type for c in claims], ['name', 'role', 'role'])
        self.assertEqual([c.value for c in roles], ['admin', 'moderator'])

    def test_get_and_remove(self):
        with self.store() as store:
            claim = store.user_account_claims.list_for_user(
                self.account.id, type='name'
            )[0]
            self.assertEqual(store.user_account_claims.get(claim.id), claim)
            store.user_account_claims.remove(claim.id)
            store.save_changes()
            with self.assertRaises(NoSuchClaim):
                store.user_account_claims.get(claim.id)

    def test_remove_for_user(self):
        with self.store() as store:
            removed = store.user_account_claims.remove_for_user(
                self.account.id, type='role'
            )
            self.assertEqual(removed, 2)
            self.assertEqual(store.save_changes(), 2)
            remaining = store.user_account_claims.list_for_user(
                self.account.id
            )
        self.assertEqual([c.type for c in remaining], ['name'])

    def test_missing_value(self):
        with self.store() as store:
            with self.assertRaises(InvalidRecord):
                store.user_account_claims.add(domain.UserAccountClaim(
                    user_account_id=self.account.id,
                    type='role',
                    value=None
                ))

    def test_remove_account(self):
        """Removing an account removes its claims and external accounts."""
        with self.store() as store:
            store.external_accounts.add(domain.ExternalAccount(
                provider='github',
                subject='12345',
                user_account_id=self.account.id
            ))
            store.save_changes()

        with self.store() as store:
            store.user_accounts.remove(self.account.id)
            self.assertEqual(store.save_changes(), 5)

        with self.store() as store:
            self.assertEqual(
                store.user_account_claims.list_for_user(self.account.id), []
            )
            self.assertEqual(
                store.external_accounts.list_for_user(self.account.id), []
            )
            with self.assertRaises(NoSuchUserAccount):
                store.user_accounts.get(self.account.id)
