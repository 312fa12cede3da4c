from khodkquiz.core.services.auth_gateway import TokenAuthGateway


class TestTokenAuthGateway:
    def test_blank_token_is_anonymous(self):
        assert not TokenAuthGateway("  ").is_authenticated

    def test_sign_out_then_new_token(self):
        auth = TokenAuthGateway("first")
        auth.sign_out()
        auth.prompt_sign_in()
        assert not auth.is_authenticated
        assert auth.sign_in_requested

        auth.set_token(" second ")

        assert auth.token == "second"
        assert not auth.sign_in_requested

    def test_clearing_token_keeps_prompt(self):
        auth = TokenAuthGateway(None)
        auth.prompt_sign_in()

        auth.set_token(None)

        assert auth.sign_in_requested
        assert not auth.is_authenticated
