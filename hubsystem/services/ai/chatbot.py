import re

KNOWLEDGE_BASE = {
    "event_registration": {
        "keywords": ['event', 'register', 'registration', 'attend', 'participate'],
        "response": (
            "To register for events:\n\n"
            "1. **Browse Events**: Go to the Events page or your hub dashboard\n"
            "2. **Find Event**: Use search or filters to find events you're interested in\n"
            "3. **Check Eligibility**: Events may be PUBLIC, for authenticated users, or hub members only\n"
            "4. **Click Register**: Click the \"Register\" button on the event page\n"
            "5. **Get Confirmation**: You'll receive a notification once you are registered\n\n"
            "**Note**: Some events have capacity limits and may fill up quickly!"
        ),
        "suggestions": ['How to find upcoming events?', 'What if an event is full?', 'How to cancel registration?'],
    },
    "project_joining": {
        "keywords": ['project', 'join', 'collaborate', 'team', 'participate'],
        "response": (
            "To join projects:\n\n"
            "1. **Hub Membership Required**: You must be a member of the hub that owns the project\n"
            "2. **Browse Projects**: Visit your hub's projects section\n"
            "3. **Review Details**: Check project objectives, required skills, and timeline\n"
            "4. **Submit Request**: Click \"Join Project\" and submit your request\n"
            "5. **Wait for Approval**: Project supervisors will review your application\n\n"
            "**For Non-Hub Members**: You need to join the hub first before participating in projects."
        ),
        "suggestions": ['How to join a hub?', 'What skills are needed for projects?', 'How to propose a new project?'],
    },
    "programme_enrollment": {
        "keywords": ['programme', 'program', 'enroll', 'course', 'learning', 'education'],
        "response": (
            "To enroll in programmes:\n\n"
            "1. **Browse Programmes**: Visit the Programmes page to see all available options\n"
            "2. **Check Requirements**: Review prerequisites and programme details\n"
            "3. **Apply**: Click \"Join Programme\" and add a short message\n"
            "4. **Wait for Approval**: Programme supervisors review each request\n"
            "5. **Track Progress**: Follow the programme from your dashboard"
        ),
        "suggestions": ['What programmes are available?', 'How long do programmes take?', 'Are programmes free?'],
    },
    "hub_joining": {
        "keywords": ['hub', 'join', 'community', 'member', 'membership'],
        "response": (
            "To join a hub:\n\n"
            "1. **Explore Hubs**: Browse available hubs on the Hubs page\n"
            "2. **Find Your Interest**: Look for hubs that match your interests and skills\n"
            "3. **Submit Request**: Click \"Join Hub\" and submit a membership request\n"
            "4. **Include Message**: Explain why you want to join and what you can contribute\n"
            "5. **Wait for Approval**: Hub leaders will review your request\n"
            "6. **Get Notified**: You'll receive a notification when approved"
        ),
        "suggestions": ['What hubs are available?', 'How to create a new hub?', 'What are hub member benefits?'],
    },
    "navigation": {
        "keywords": ['navigate', 'find', 'where', 'how to use', 'dashboard', 'menu'],
        "response": (
            "Platform Navigation Guide:\n\n"
            "**Main Sections**:\n"
            "- **Dashboard**: Your personalized overview and activities\n"
            "- **Hubs**: Browse and join communities\n"
            "- **Events**: Discover and register for events\n"
            "- **Projects**: Collaborate on innovative projects\n"
            "- **Programmes**: Enroll in learning opportunities\n\n"
            "**Hub Leaders** manage their hub's events and projects; **Admins** have full system management."
        ),
        "suggestions": ['How to update my profile?', 'Where to find my registrations?', 'How to contact support?'],
    },
    "technical_support": {
        "keywords": ['help', 'support', 'problem', 'issue', 'error', 'bug', 'technical'],
        "response": (
            "Technical Support:\n\n"
            "**Common Issues**:\n"
            "- **Login Problems**: Try clearing browser cache or reset password\n"
            "- **File Upload Issues**: Check file size (max 10MB) and format\n"
            "- **Page Not Loading**: Refresh page or try different browser\n\n"
            "**Email Support**: support@udsm.ac.tz\n"
            "For urgent issues contact your hub leader or system administrator."
        ),
        "suggestions": ['How to reset password?', 'File upload not working', 'Contact system admin'],
    },
    "policies": {
        "keywords": ['policy', 'rules', 'guidelines', 'terms', 'conditions'],
        "response": (
            "Platform Policies:\n\n"
            "**User Guidelines**:\n"
            "- Respect all community members\n"
            "- Share accurate information only\n"
            "- Respect intellectual property rights\n\n"
            "**Content Policies**:\n"
            "- No spam or offensive material\n"
            "- Follow academic integrity standards\n\n"
            "For detailed policies, contact administration at admin@udsm.ac.tz"
        ),
        "suggestions": ['How to report inappropriate content?', 'Privacy settings', 'Academic integrity guidelines'],
    },
}

GREETING_RE = re.compile(r'^(hi|hello|hey|good morning|good afternoon|good evening)\b')
THANKS_RE = re.compile(r'thank|thanks|appreciate')

GREETING = {
    "response": "Hello! I'm here to help you navigate the UDSM Hub Management System. "
                "What would you like to know about?",
    "suggestions": ['How to join a hub?', 'How to register for events?', 'How to enroll in programmes?'],
}

THANKS = {
    "response": "You're welcome! Is there anything else I can help you with?",
    "suggestions": ['Browse available hubs', 'Find upcoming events', 'Explore programmes'],
}

GENERAL = {
    "response": (
        "I can help you with various aspects of the UDSM Hub Management System:\n\n"
        "- **Hubs**: Join communities and collaborate\n"
        "- **Events**: Register for workshops and seminars\n"
        "- **Projects**: Participate in innovative projects\n"
        "- **Programmes**: Enroll in learning opportunities\n\n"
        "What specific area would you like help with?"
    ),
    "suggestions": ['Join a hub', 'Register for events', 'Find projects', 'Enroll in programmes'],
}


class Chatbot:

    @staticmethod
    def detect_intent(message):
        """
        Returns (intent, hits). Ties go to the intent listed first in the knowledge base.
        """
        text = (message or '').lower().strip()
        best_intent, best_hits = None, 0
        for intent, entry in KNOWLEDGE_BASE.items():
            hits = sum(1 for keyword in entry["keywords"] if keyword in text)
            if hits > best_hits:
                best_intent, best_hits = intent, hits

        if best_intent:
            return best_intent, best_hits
        if GREETING_RE.match(text):
            return 'greeting', 0
        if THANKS_RE.search(text):
            return 'thanks', 0
        return 'general', 0

    @staticmethod
    def reply(message):
        intent, hits = Chatbot.detect_intent(message)

        if intent in KNOWLEDGE_BASE:
            entry = KNOWLEDGE_BASE[intent]
            confidence = min(0.5 + 0.15 * hits, 0.95)
        elif intent == 'greeting':
            entry, confidence = GREETING, 0.9
        elif intent == 'thanks':
            entry, confidence = THANKS, 0.9
        else:
            entry, confidence = GENERAL, 0.3

        return {
            "response": entry["response"],
            "suggestions": list(entry["suggestions"]),
            "intent": intent,
            "confidence": round(confidence, 2),
        }
