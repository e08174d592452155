import pytest

from models import User


@pytest.mark.cli
class TestCreateUserCommand:
    def test_creates_user(self, cli_runner, session):
        result = cli_runner.invoke(
            args=[
                "create-user",
                "--email",
                "Ada@Example.com",
                "--name",
                "Ada Lovelace",
                "--password",
                "analytical-engine",
                "--sector",
                "Bakery software",
            ]
        )

        assert result.exit_code == 0, result.output
        assert "User ada@example.com created" in result.output
        user = User.query.filter_by(email="ada@example.com").one()
        assert user.sector == "Bakery software"
        assert user.check_password("analytical-engine")

    def test_existing_user_is_left_alone(self, cli_runner, user):
        result = cli_runner.invoke(
            args=[
                "create-user",
                "--email",
                user.email,
                "--name",
                "Someone Else",
                "--password",
                "other",
            ]
        )

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert User.query.count() == 1
