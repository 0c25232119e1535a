from hubsystem.models import Category, Hub, User


class TestInitDb:
    def test_seeds_defaults(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['init-db'])

        assert result.exit_code == 0
        assert f"Default admin account: {app.config['DEFAULT_ADMIN_EMAIL']}" in result.output
        with app.app_context():
            admin = User.query.filter_by(email=app.config['DEFAULT_ADMIN_EMAIL']).one()
            assert admin.role == 'admin'
            assert Category.query.count() == 5
            hub = Hub.query.filter_by(name='Innovation Hub').one()
            assert sorted(c.name for c in hub.categories) == ['Innovation', 'Technology']

    def test_is_idempotent(self, app):
        runner = app.test_cli_runner()

        runner.invoke(args=['init-db'])
        result = runner.invoke(args=['init-db'])

        assert result.exit_code == 0
        with app.app_context():
            assert User.query.count() == 1
            assert Hub.query.count() == 2
            assert Category.query.count() == 5

    def test_drop_requires_confirmation(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=['init-db'])

        result = runner.invoke(args=['init-db', '--drop'], input='n\n')

        assert result.exit_code == 1
        with app.app_context():
            assert User.query.count() == 1
