"""
Unit Tests for Domain Models
============================

Purpose
-------
Verify value-object validation and the document mapping of progression,
challenge, quest and badge records.

Test Coverage
-------------
- UserProgressionState validation and document reads
- Idempotency window trimming
- DailyChallenge document round trip and completion
- QuestDefinition / QuestStep validation
- BadgeDefinition parsing (rarity, unknown requirement types)

Testing Strategy
----------------
- Direct construction, no fixtures
- AAA pattern (Arrange, Act, Assert)
"""

from datetime import date, datetime, timezone

import pytest

from questline.domain.models.badge import BadgeDefinition, Rarity, RequirementType
from questline.domain.models.base import DomainValidationError
from questline.domain.models.challenge import (
    ChallengeRequirement,
    ChallengeRewards,
    ChallengeStatus,
    ChallengeType,
    DailyChallenge,
    RequirementTarget,
)
from questline.domain.models.progression import CompletedQuest, UserProgressionState
from questline.domain.models.quest import (
    Difficulty,
    QuestAttempt,
    QuestDefinition,
    QuestStep,
    StepType,
)

UTC = timezone.utc


# ============================================================================
# PROGRESSION STATE
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestUserProgressionState:
    def test_defaults_for_new_user(self):
        state = UserProgressionState.from_document(None)

        assert state.xp == 0
        assert state.badges == ()
        assert state.last_login_day is None
        assert state.quests_completed == 0

    def test_negative_xp_rejected(self):
        with pytest.raises(DomainValidationError) as exc_info:
            UserProgressionState(xp=-5)

        assert exc_info.value.field == "xp"

    def test_duplicate_badges_rejected(self):
        with pytest.raises(DomainValidationError):
            UserProgressionState(badges=("first_quest", "first_quest"))

    def test_document_read_deduplicates_badges(self):
        state = UserProgressionState.from_document(
            {"xp": 120, "badges": ["first_quest", "week_streak", "first_quest"]}
        )

        assert state.badges == ("first_quest", "week_streak")

    def test_unparsable_last_login_is_absent(self):
        state = UserProgressionState.from_document({"lastLoginDay": "garbage"})

        assert state.last_login_day is None

    def test_document_contains_level_and_completed_quests(self):
        # Arrange
        completed_at = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)
        state = UserProgressionState(xp=320, streak=2, last_login_day=date(2026, 3, 14)).with_completed_quest(
            "budget-basics",
            CompletedQuest(score=80, completed_at=completed_at, time_bonus=20, category="budgeting"),
        )

        # Act
        doc = state.to_document("Expert")
        restored = UserProgressionState.from_document(doc)

        # Assert
        assert doc["level"] == "Expert"
        assert doc["lastLoginDay"] == "2026-03-14"
        assert doc["completedQuests"]["budget-basics"]["completedAt"] == "2026-03-14T09:30:00+00:00"
        assert restored == state

    def test_processed_attempts_window(self):
        state = UserProgressionState()
        for attempt_id in ("a", "b", "c", "d"):
            state = state.with_processed_attempt(attempt_id, window=3)

        assert state.processed_attempts == ("b", "c", "d")

    def test_reprocessed_attempt_moves_to_end(self):
        state = UserProgressionState(processed_attempts=("a", "b"))

        assert state.with_processed_attempt("a", window=5).processed_attempts == ("b", "a")


# ============================================================================
# DAILY CHALLENGE
# ============================================================================


def make_challenge(**overrides):
    fields = dict(
        id="daily_2026-03-14_73",
        date=date(2026, 3, 14),
        type=ChallengeType.PERFECTIONIST,
        quest_id="budget-basics",
        seed=73,
        requirements=(ChallengeRequirement("No mistakes", RequirementTarget.NO_MISTAKES, 0),),
        rewards=ChallengeRewards(xp=100, badge="daily_perfectionist"),
        expires_at=datetime(2026, 3, 15, tzinfo=UTC),
    )
    fields.update(overrides)
    return DailyChallenge(**fields)


@pytest.mark.unit
@pytest.mark.domain
class TestDailyChallenge:
    def test_document_round_trip(self):
        challenge = make_challenge()

        doc = challenge.to_document()

        assert doc["questId"] == "budget-basics"
        assert doc["rewards"] == {"xp": 100, "streak": 1, "badge": "daily_perfectionist"}
        assert doc["status"] == "active"
        assert DailyChallenge.from_document(doc) == challenge

    def test_rewards_without_badge_omit_key(self):
        assert ChallengeRewards(xp=40).to_document() == {"xp": 40, "streak": 1}

    def test_complete_sets_status_and_time(self):
        at = datetime(2026, 3, 14, 18, tzinfo=UTC)

        completed = make_challenge().complete(at)

        assert completed.status is ChallengeStatus.COMPLETED
        assert completed.completed_at == at
        assert completed.is_active is False

    def test_transient_flag_not_compared(self):
        challenge = make_challenge()

        transient = challenge.as_transient()

        assert transient.persisted is False
        assert transient == challenge

    def test_naive_expiry_rejected(self):
        with pytest.raises(DomainValidationError):
            make_challenge(expires_at=datetime(2026, 3, 15))

    def test_malformed_date_rejected(self):
        doc = make_challenge().to_document()
        doc["date"] = "someday"

        with pytest.raises(DomainValidationError):
            DailyChallenge.from_document(doc)


# ============================================================================
# QUESTS & BADGES
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestQuestModels:
    def test_quest_from_document(self):
        quest = QuestDefinition.from_document(
            {
                "id": "debt-avalanche",
                "category": "debt",
                "difficulty": "medium",
                "durationMinutes": 15,
                "xp": 85,
                "steps": [
                    {"type": "quiz", "optionCount": 3, "correctIndex": 2},
                    {"type": "checklist", "itemCount": 4},
                    {"type": "challenge"},
                ],
            }
        )

        assert quest.difficulty is Difficulty.MEDIUM
        assert quest.duration_seconds == 900
        assert [step.type for step in quest.steps] == [StepType.QUIZ, StepType.CHECKLIST, StepType.CHALLENGE]
        assert QuestDefinition.from_document(quest.to_document()) == quest

    def test_quiz_correct_index_in_range(self):
        with pytest.raises(DomainValidationError) as exc_info:
            QuestStep(StepType.QUIZ, option_count=3, correct_index=3)

        assert exc_info.value.field == "correct_index"

    def test_checklist_requires_items(self):
        with pytest.raises(DomainValidationError):
            QuestStep(StepType.CHECKLIST)

    def test_unknown_step_type_rejected(self):
        with pytest.raises(DomainValidationError):
            QuestStep.from_document({"type": "video"})

    def test_unknown_difficulty_rejected(self):
        with pytest.raises(DomainValidationError):
            Difficulty.parse("Legendary")

    def test_attempt_rejects_negative_elapsed(self):
        with pytest.raises(DomainValidationError):
            QuestAttempt(elapsed_seconds=-1)

    def test_attempt_from_document(self):
        attempt = QuestAttempt.from_document(
            {
                "answers": [{"completed": True, "selectedIndex": 1}],
                "elapsedSeconds": 120,
                "isPremium": True,
                "hintsUsed": 1,
                "attemptId": "att-1",
            }
        )

        assert attempt.answers[0].selected_index == 1
        assert attempt.is_premium is True
        assert attempt.attempt_id == "att-1"


@pytest.mark.unit
@pytest.mark.domain
class TestBadgeDefinition:
    def test_rare_flag(self):
        badge = BadgeDefinition.from_document(
            {"id": "xp_10000", "category": "xp", "rare": True, "xp": 2000,
             "requirement": {"type": "xp", "value": 10000}}
        )

        assert badge.rarity is Rarity.RARE
        assert badge.requirement.type is RequirementType.XP

    def test_unknown_requirement_type_keeps_raw_name(self):
        badge = BadgeDefinition.from_document(
            {"id": "odd", "requirement": {"type": "moon_phase", "value": 1}}
        )

        assert badge.requirement.type is RequirementType.UNKNOWN
        assert badge.requirement.raw_type == "moon_phase"
        assert badge.rarity is Rarity.COMMON
