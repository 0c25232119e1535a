from datetime import datetime
from typing import Dict, List, Optional

PRIORITY_WEIGHTS = {"critical": 4, "high": 3, "medium": 2, "low": 1}

# Sep..May
ACADEMIC_MONTHS = (9, 10, 11, 12, 1, 2, 3, 4, 5)

DEFAULT_HUB_TIPS = [
    "Increase member engagement through regular events",
    "Create collaborative projects to foster teamwork",
    "Establish mentorship programs",
    "Develop partnerships with industry leaders",
    "Implement feedback collection systems",
]

LOW_ENGAGEMENT_HUB_TIPS = [
    "Run a short survey to learn what members want from the hub",
    "Schedule at least two events per month to keep members active",
    "Pair new members with experienced mentors",
    "Showcase member projects in hub announcements",
    "Implement feedback collection systems",
]


def _fmt(value):
    """Render a metric the way it reads in prose: 12 not 12.0, 12.5 not 12.50."""
    if isinstance(value, float):
        value = round(value, 1)
        if value.is_integer():
            return str(int(value))
    return str(value)


def _insight(id, type, title, description, confidence, priority, impact, recommendations, data=None):
    insight = {
        "id": id,
        "type": type,
        "title": title,
        "description": description,
        "confidence": confidence,
        "priority": priority,
        "actionable": True,
        "impact": impact,
        "recommendations": recommendations,
    }
    if data is not None:
        insight["data"] = data
    return insight


class InsightsEngine:
    """
    Deterministic analytics insights.

    Each analyzer compares pre-aggregated counters against fixed thresholds
    and emits canned insights. Sections missing from the input are skipped,
    and ratios with a zero denominator never fire.
    """

    @staticmethod
    def generate(data: Dict, user_role: Optional[str] = None, now: Optional[datetime] = None) -> List[Dict]:
        data = data or {}
        insights = []

        engagement = data.get("userEngagement")
        hubs = data.get("hubPerformance")
        projects = data.get("projectMetrics")
        events = data.get("eventMetrics")

        if engagement:
            insights.extend(InsightsEngine.analyze_user_engagement(engagement))
        if hubs:
            insights.extend(InsightsEngine.analyze_hub_performance(hubs, user_role))
        if projects:
            insights.extend(InsightsEngine.analyze_project_metrics(projects))
        if events:
            insights.extend(InsightsEngine.analyze_event_metrics(events))
        insights.extend(InsightsEngine.analyze_correlations(data))
        insights.extend(InsightsEngine.predict(data, now=now))

        return InsightsEngine.sort(insights)

    @staticmethod
    def sort(insights: List[Dict]) -> List[Dict]:
        # sorted() is stable, so equal keys keep rule order
        return sorted(
            insights,
            key=lambda i: (-PRIORITY_WEIGHTS.get(i["priority"], 0), -i["confidence"]),
        )

    @staticmethod
    def analyze_user_engagement(engagement: Dict) -> List[Dict]:
        insights = []
        total_users = engagement.get("totalUsers", 0)
        active_users = engagement.get("activeUsers", 0)
        rate = engagement.get("engagementRate", 0)
        trend = engagement.get("trend", 0)

        if rate < 25:
            insights.append(_insight(
                "critical-engagement", "alert",
                "Critical: User Engagement Below Threshold",
                f"User engagement rate of {_fmt(rate)}% is critically low. "
                "Immediate intervention required to prevent user churn.",
                0.92, "critical", "negative",
                [
                    "Launch emergency re-engagement campaign targeting inactive users",
                    "Implement push notifications for important updates",
                    "Create personalized content recommendations",
                    "Introduce urgent gamification elements (badges, leaderboards)",
                    "Conduct user surveys to identify pain points",
                ],
            ))
        elif rate < 40:
            insights.append(_insight(
                "low-engagement", "recommendation",
                "User Engagement Needs Improvement",
                f"Current engagement rate of {_fmt(rate)}% is below industry standards. "
                "Strategic improvements needed.",
                0.85, "high", "negative",
                [
                    "Implement weekly engagement challenges",
                    "Create more interactive content formats",
                    "Improve onboarding experience for new users",
                    "Add social features to increase community interaction",
                ],
            ))

        if trend > 20:
            insights.append(_insight(
                "rapid-growth", "trend",
                "Exceptional Growth Rate Detected",
                f"User base growing at {_fmt(trend)}% - exceptional performance requiring infrastructure scaling.",
                0.94, "high", "positive",
                [
                    "Scale server infrastructure immediately",
                    "Prepare customer support for increased volume",
                    "Optimize database queries for higher load",
                    "Plan feature rollouts to capitalize on growth momentum",
                ],
            ))
        elif trend < -5:
            insights.append(_insight(
                "declining-growth", "alert",
                "User Growth Declining",
                f"Negative growth trend of {_fmt(trend)}% indicates potential platform issues or market saturation.",
                0.78, "high", "negative",
                [
                    "Analyze user feedback for platform issues",
                    "Launch targeted marketing campaigns",
                    "Introduce referral incentive programs",
                    "Conduct competitive analysis",
                ],
            ))

        if total_users > 0:
            active_ratio = active_users / total_users * 100
            if active_ratio < 30:
                insights.append(_insight(
                    "low-active-ratio", "recommendation",
                    "Low Active User Ratio",
                    f"Only {active_ratio:.1f}% of users are active. "
                    "Many registered users are not engaging with the platform.",
                    0.81, "medium", "neutral",
                    [
                        "Create re-activation email campaigns",
                        "Implement progressive web app features",
                        "Add mobile notifications for important updates",
                        "Simplify user interface and navigation",
                    ],
                ))

        return insights

    @staticmethod
    def analyze_hub_performance(hubs: Dict, user_role: Optional[str] = None) -> List[Dict]:
        insights = []
        total_hubs = hubs.get("totalHubs", 0)
        active_hubs = hubs.get("activeHubs", 0)
        average_members = hubs.get("averageMembers", 0)
        top_hubs = hubs.get("topPerformingHubs") or []

        if total_hubs > 0:
            active_ratio = active_hubs / total_hubs * 100
            if active_ratio < 70:
                insights.append(_insight(
                    "inactive-hubs", "recommendation",
                    "Multiple Hubs Showing Low Activity",
                    f"{_fmt(100 - active_ratio)}% of hubs are inactive or underperforming. "
                    "Hub consolidation or revitalization needed.",
                    0.76, "medium", "negative",
                    [
                        "Identify and support struggling hub leaders",
                        "Create inter-hub collaboration events",
                        "Provide hub management training and resources",
                        "Consider merging similar low-activity hubs",
                    ],
                ))

        if average_members < 8:
            insights.append(_insight(
                "small-hub-size", "recommendation",
                "Hub Membership Below Optimal Size",
                f"Average hub size of {_fmt(average_members)} members is below the optimal range "
                "of 15-30 for maximum collaboration.",
                0.73, "medium", "neutral",
                [
                    "Launch targeted recruitment campaigns for each hub",
                    "Improve hub discovery algorithms",
                    "Create cross-promotional opportunities between hubs",
                    "Implement member referral rewards",
                ],
            ))

        if top_hubs and (user_role or '').lower() == 'admin':
            insights.append(_insight(
                "top-performer-analysis", "trend",
                "Success Patterns Identified in Top Hubs",
                "Analysis of top-performing hubs reveals best practices that can be replicated across the platform.",
                0.87, "medium", "positive",
                [
                    "Document and share best practices from top hubs",
                    "Create mentorship programs pairing successful and struggling hubs",
                    "Implement features that successful hubs use most",
                    "Recognize and reward top-performing hub leaders",
                ],
                data={"topPerformingHubs": top_hubs},
            ))

        return insights

    @staticmethod
    def analyze_project_metrics(projects: Dict) -> List[Dict]:
        insights = []
        total_projects = projects.get("totalProjects", 0)
        completion_rate = projects.get("completionRate", 0)
        completion_time = projects.get("averageCompletionTime", 0)

        if completion_rate < 50:
            insights.append(_insight(
                "low-project-completion", "alert",
                "Project Completion Rate Critically Low",
                f"Only {_fmt(completion_rate)}% of projects are completed successfully. "
                "This indicates systemic issues in project management.",
                0.89, "high", "negative",
                [
                    "Implement mandatory project planning workshops",
                    "Create project milestone tracking system",
                    "Assign mentors to all new projects",
                    "Develop project success prediction algorithms",
                    "Provide project management tools and templates",
                ],
            ))
        elif completion_rate < 70:
            insights.append(_insight(
                "moderate-project-completion", "recommendation",
                "Project Completion Rate Needs Improvement",
                f"Project completion rate of {_fmt(completion_rate)}% is below optimal. "
                "Strategic interventions can improve success rates.",
                0.82, "medium", "negative",
                [
                    "Introduce project check-in requirements",
                    "Create peer review and feedback systems",
                    "Offer project management certification programs",
                    "Implement early warning systems for at-risk projects",
                ],
            ))

        # more than six months
        if completion_time > 180:
            insights.append(_insight(
                "long-project-duration", "recommendation",
                "Projects Taking Longer Than Expected",
                f"Average completion time of {_fmt(completion_time)} days suggests projects "
                "may be too ambitious or poorly scoped.",
                0.75, "medium", "neutral",
                [
                    "Encourage smaller, more focused project scopes",
                    "Implement agile project management methodologies",
                    "Create project timeline estimation tools",
                    "Provide training on realistic goal setting",
                ],
            ))

        # Volume is measured against a nominal ten hubs
        if total_projects / 10 < 2:
            insights.append(_insight(
                "low-project-volume", "recommendation",
                "Low Project Creation Rate",
                "Few projects are being initiated. This may indicate barriers to project creation "
                "or lack of innovation culture.",
                0.71, "medium", "negative",
                [
                    "Simplify project proposal process",
                    "Create project idea generation workshops",
                    "Offer seed funding for innovative projects",
                    "Showcase successful projects to inspire others",
                ],
            ))

        return insights

    @staticmethod
    def analyze_event_metrics(events: Dict) -> List[Dict]:
        insights = []
        upcoming = events.get("upcomingEvents", 0)
        attendance = events.get("averageAttendance", 0)
        popular_types = events.get("popularEventTypes") or []

        if attendance < 40:
            insights.append(_insight(
                "low-event-attendance", "recommendation",
                "Event Attendance Below Expectations",
                f"Average attendance of {_fmt(attendance)}% indicates events may not be meeting "
                "user needs or expectations.",
                0.84, "medium", "negative",
                [
                    "Survey users about preferred event topics and formats",
                    "Improve event promotion and marketing strategies",
                    "Offer attendance incentives and recognition",
                    "Create more interactive and engaging event formats",
                    "Optimize event timing based on user availability",
                ],
            ))

        if upcoming < 5:
            insights.append(_insight(
                "low-upcoming-events", "alert",
                "Insufficient Upcoming Events",
                f"Only {_fmt(upcoming)} upcoming events scheduled. Users need consistent event "
                "programming to maintain engagement.",
                0.79, "medium", "negative",
                [
                    "Create quarterly event planning calendars",
                    "Encourage hub leaders to schedule regular events",
                    "Develop recurring event series (weekly workshops, monthly seminars)",
                    "Partner with external organizations for guest events",
                ],
            ))

        if popular_types:
            top_three = ", ".join(str(t) for t in popular_types[:3])
            insights.append(_insight(
                "event-type-optimization", "trend",
                "Event Type Preferences Identified",
                "User preferences for specific event types can guide future event planning "
                "and resource allocation.",
                0.86, "low", "positive",
                [
                    f"Focus on popular event types: {top_three}",
                    "Create specialized tracks for high-demand topics",
                    "Train more facilitators in popular event formats",
                    "Develop templates for successful event types",
                ],
            ))

        return insights

    @staticmethod
    def analyze_correlations(data: Dict) -> List[Dict]:
        insights = []
        hubs = data.get("hubPerformance")
        projects = data.get("projectMetrics")
        engagement = data.get("userEngagement")
        events = data.get("eventMetrics")

        if hubs and projects:
            if hubs.get("averageMembers", 0) > 15 and projects.get("completionRate", 0) > 70:
                insights.append(_insight(
                    "hub-size-success-correlation", "trend",
                    "Strong Correlation: Hub Size and Project Success",
                    "Larger hubs (15+ members) show significantly higher project completion rates. "
                    "This suggests optimal hub sizing strategies.",
                    0.83, "medium", "positive",
                    [
                        "Target hub growth to 15-30 member range",
                        "Provide additional support to smaller hubs",
                        "Create hub merger opportunities for very small hubs",
                        "Study successful large hubs for best practices",
                    ],
                ))

        if engagement and events:
            if engagement.get("engagementRate", 0) < 40 and events.get("averageAttendance", 0) < 50:
                insights.append(_insight(
                    "engagement-event-correlation", "recommendation",
                    "Low Engagement Correlates with Poor Event Attendance",
                    "Users with low platform engagement are also less likely to attend events, "
                    "suggesting a compound engagement problem.",
                    0.77, "high", "negative",
                    [
                        "Create integrated engagement campaigns combining platform and event activities",
                        "Use event attendance as an engagement metric",
                        "Develop event-based onboarding for new users",
                        "Create exclusive events for highly engaged users",
                    ],
                ))

        return insights

    @staticmethod
    def predict(data: Dict, now: Optional[datetime] = None) -> List[Dict]:
        insights = []
        now = now or datetime.utcnow()
        engagement = data.get("userEngagement") or {}
        hubs = data.get("hubPerformance") or {}

        if now.month in ACADEMIC_MONTHS:
            insights.append(_insight(
                "seasonal-prediction", "prediction",
                "Academic Season Activity Surge Predicted",
                "Historical patterns suggest 40-60% increase in platform activity during academic months. "
                "Infrastructure scaling recommended.",
                0.91, "medium", "positive",
                [
                    "Scale server capacity by 50% before peak periods",
                    "Increase customer support availability",
                    "Prepare additional content and events",
                    "Monitor performance metrics closely during surge",
                ],
            ))

        if engagement and engagement.get("trend", 0) < -2:
            insights.append(_insight(
                "churn-prediction", "prediction",
                "User Churn Risk Increasing",
                "Declining engagement trends suggest potential user churn in the next 30-60 days "
                "without intervention.",
                0.74, "high", "negative",
                [
                    "Launch immediate user retention campaigns",
                    "Identify and contact at-risk users personally",
                    "Implement win-back email sequences",
                    "Create exclusive content for returning users",
                ],
            ))

        total_users = engagement.get("totalUsers", 0)
        total_hubs = hubs.get("totalHubs", 0)
        if total_hubs > 0 and total_users / total_hubs > 50:
            insights.append(_insight(
                "expansion-opportunity", "prediction",
                "Hub Expansion Opportunity Identified",
                "High user-to-hub ratio suggests demand for additional specialized hubs. "
                "Strategic expansion could capture unmet needs.",
                0.68, "low", "positive",
                [
                    "Survey users about desired new hub topics",
                    "Analyze user interests for hub creation opportunities",
                    "Recruit potential hub leaders from active members",
                    "Create pilot programs for new hub concepts",
                ],
            ))

        return insights

    # --- Dashboard level insights ---

    @staticmethod
    def system_insights(metrics: Dict) -> List[Dict]:
        """
        Short insight list for the admin dashboard, computed from the headline stats.

        Args:
            metrics: totalUsers, activeUsers, totalHubs, totalProjects,
                     totalEvents, engagementRate, growthRate.
        """
        insights = []
        total_hubs = metrics.get("totalHubs", 0)

        if metrics.get("engagementRate", 0) < 30:
            insights.append({
                "id": "system-low-engagement",
                "type": "alert",
                "title": "Low User Engagement",
                "description": "User engagement is below optimal levels. "
                               "Consider implementing gamification or incentive programs.",
                "confidence": 0.8,
                "actionable": True,
                "priority": "high",
            })

        if metrics.get("growthRate", 0) > 20:
            insights.append({
                "id": "system-strong-growth",
                "type": "trend",
                "title": "Strong Growth Trend",
                "description": "The platform is experiencing healthy growth. "
                               "Ensure infrastructure can handle increased load.",
                "confidence": 0.9,
                "actionable": True,
                "priority": "medium",
            })

        total_users = metrics.get("totalUsers", 0)
        if total_users > 0 and total_hubs / total_users < 0.1:
            insights.append({
                "id": "system-more-hubs",
                "type": "recommendation",
                "title": "Consider Creating More Hubs",
                "description": "The hub-to-user ratio suggests there may be demand "
                               "for more specialized communities.",
                "confidence": 0.7,
                "actionable": True,
                "priority": "medium",
            })

        if total_hubs > 0 and metrics.get("totalEvents", 0) / total_hubs < 2:
            insights.append({
                "id": "system-few-events",
                "type": "recommendation",
                "title": "Increase Event Frequency",
                "description": "Hubs are running fewer than two events each. "
                               "Regular events keep members engaged.",
                "confidence": 0.75,
                "actionable": True,
                "priority": "medium",
            })

        if total_hubs > 0 and metrics.get("totalProjects", 0) / total_hubs < 3:
            insights.append({
                "id": "system-few-projects",
                "type": "recommendation",
                "title": "Encourage Project Creation",
                "description": "Hubs average fewer than three projects. "
                               "Project proposals could be promoted more actively.",
                "confidence": 0.7,
                "actionable": True,
                "priority": "low",
            })

        return InsightsEngine.sort(insights)

    @staticmethod
    def hub_recommendations(hub_metrics: Dict) -> List[str]:
        """Five improvement tips for a hub, tailored when engagement is low."""
        if hub_metrics.get("engagementRate", 100) < 30:
            return list(LOW_ENGAGEMENT_HUB_TIPS)
        return list(DEFAULT_HUB_TIPS)
