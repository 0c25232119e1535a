import pytest

from hubsystem.services.ai.chatbot import Chatbot, KNOWLEDGE_BASE


class TestChatbot:
    def test_event_question(self):
        reply = Chatbot.reply("How do I register for an event?")

        assert reply["intent"] == "event_registration"
        assert reply["confidence"] == 0.8
        assert reply["response"] == KNOWLEDGE_BASE["event_registration"]["response"]
        assert len(reply["suggestions"]) == 3

    def test_ties_go_to_first_intent(self):
        """'join' is a keyword of both project_joining and hub_joining."""
        intent, hits = Chatbot.detect_intent("join")
        assert (intent, hits) == ("project_joining", 1)

    def test_confidence_is_capped(self):
        reply = Chatbot.reply("help support problem issue error bug technical")
        assert reply["intent"] == "technical_support"
        assert reply["confidence"] == 0.95

    @pytest.mark.parametrize("message, intent, confidence", [
        ("Hello there", "greeting", 0.9),
        ("Good morning!", "greeting", 0.9),
        ("thanks a lot", "thanks", 0.9),
        ("qwerty", "general", 0.3),
        ("", "general", 0.3),
    ])
    def test_fallback_intents(self, message, intent, confidence):
        reply = Chatbot.reply(message)
        assert reply["intent"] == intent
        assert reply["confidence"] == confidence

    def test_suggestions_are_copies(self):
        reply = Chatbot.reply("policy")
        reply["suggestions"].append("mutated")
        assert "mutated" not in KNOWLEDGE_BASE["policies"]["suggestions"]


class TestChatbotRoute:
    def test_requires_login(self, client):
        response = client.post('/api/ai/chatbot', json={"message": "hi"})
        assert response.status_code == 401

    def test_blank_message_rejected(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/ai/chatbot', json={"message": "   "})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Message is required"

    def test_reply(self, client, make_user, login):
        make_user('amina@udsm.ac.tz')
        login(client, 'amina@udsm.ac.tz')

        response = client.post('/api/ai/chatbot', json={"message": "How can I enroll in a programme?"})
        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["intent"] == "programme_enrollment"
