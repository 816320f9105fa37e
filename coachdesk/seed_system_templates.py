import logging
from coachdesk.models import QuestionnaireTemplate, OWNER_SYSTEM
from coachdesk.services.template_service import TemplateService

logger = logging.getLogger(__name__)


def _questionnaire(prefix, open_questions, rating_questions):
    questions = []
    for index, text in enumerate(open_questions + rating_questions, start=1):
        kind = 'open' if index <= len(open_questions) else 'rating'
        questions.append({'id': f"{prefix}-{index}", 'kind': kind, 'text': text})
    return questions


SYSTEM_TEMPLATES = [
    {
        "title": "Questionnaire 1: Day Opening",
        "category": "day_opening",
        "questions": _questionnaire("1", [
            "What are the three most important things you want to achieve in training today?",
            "What could help you reach your goals today?",
            "What could get in your way during training, and how will you deal with it?"
        ], [
            "Physical energy level (1-10)",
            "Mental readiness (1-10)",
            "Focus on today's goals (1-10)"
        ])
    },
    {
        "title": "Questionnaire 2: Day Summary",
        "category": "day_summary",
        "questions": _questionnaire("2", [
            "What were your main achievements today?",
            "Did you discover or learn something specific about yourself today?",
            "What would you like to improve in tomorrow's training?"
        ], [
            "Satisfaction with your effort (1-10)",
            "Satisfaction with your attitude (1-10)",
            "Sense of progress toward your goals (1-10)"
        ])
    },
    {
        "title": "Questionnaire 3: After the Game",
        "category": "post_game",
        "questions": _questionnaire("3", [
            "What were the best actions you made in the game?",
            "Which actions would you like to do better next time?",
            "What did you learn from the game that you will take forward?"
        ], [
            "Satisfaction with overall performance (1-10)",
            "Mental readiness before and during the game (1-10)",
            "Confidence level during the game (1-10)"
        ])
    },
    {
        "title": "Questionnaire 4: Mental Readiness Before a Game",
        "category": "mental_prep",
        "questions": _questionnaire("4", [
            "What are your main thoughts before the game?",
            "Which positive scenarios did you imagine as preparation?",
            "What do you do to calm yourself down?"
        ], [
            "Physical readiness (1-10)",
            "Mental readiness (1-10)",
            "Pressure level (1-10)"
        ])
    },
    {
        "title": "Questionnaire 5: Personal Goals Check-in (Weekly)",
        "category": "personal_goals",
        "questions": _questionnaire("5", [
            "Which personal goals did you achieve this week?",
            "What challenges did you face?",
            "Which goals would you like to set for next week?"
        ], [
            "Satisfaction with your progress (1-10)",
            "Motivation level (1-10)",
            "Commitment to your personal plan (1-10)"
        ])
    },
    {
        "title": "Questionnaire 6: Motivation and Pressure",
        "category": "motivation",
        "questions": _questionnaire("6", [
            "What motivates you the most?",
            "How do you deal with pressure and frustration?",
            "What could improve the way you handle pressure?"
        ], [
            "Current motivation level (1-10)",
            "Coping with pressure (1-10)",
            "How often pressure hurts your performance (1-10)"
        ])
    },
    {
        "title": "Questionnaire 7: End of Season",
        "category": "season_end",
        "questions": _questionnaire("7", [
            "What were your highlights of the season?",
            "Which goals were not reached, and why?",
            "What will you do differently next season?"
        ], [
            "Satisfaction with training (1-10)",
            "Satisfaction with your personal development (1-10)",
            "Motivation for the next season (1-10)"
        ])
    },
    {
        "title": "Questionnaire 8: Team Communication and Interaction",
        "category": "team_communication",
        "questions": _questionnaire("8", [
            "How would you describe communication with your teammates?",
            "What works well, and what works less well, with the coaching staff?",
            "How could overall communication be improved?"
        ], [
            "Open communication with teammates (1-10)",
            "Understanding of what the staff expects from you (1-10)",
            "Comfort approaching staff or players (1-10)"
        ])
    }
]


def seed_system_templates(templates=None):
    """
    Insert the default system questionnaires that are not there yet.
    Matching is by category, so running it again inserts nothing.
    Returns the newly created templates.
    """
    templates = SYSTEM_TEMPLATES if templates is None else templates

    existing = {
        row[0] for row in
        QuestionnaireTemplate.query.with_entities(QuestionnaireTemplate.category)
        .filter(QuestionnaireTemplate.owner_kind == OWNER_SYSTEM).all()
    }

    created = []
    for entry in templates:
        if entry['category'] in existing:
            continue
        created.append(TemplateService.create_system_template(
            entry['title'], entry['questions'], category=entry['category']
        ))
        existing.add(entry['category'])

    logger.info(f"Seeded {len(created)} new system template(s)")
    return created
