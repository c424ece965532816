"""
Score intake tests: parsing, validation and what gets written.
"""

import hashlib
from decimal import Decimal

import pytest

from src.core.config import ConfigurationService
from src.core.context import Context
from src.core.schema import REVIEW_FIELD, SCORE_FIELD
from src.workflow.action import RETURN_TO_POOL, SUBMIT_EDIT_METADATA
from src.workflow.factory import build_services
from src.workflow.request import ActionRequest
from src.workflow.result import OutcomeType
from src.workflow.score_review import (
    SUBMIT_SCORE,
    ScoreReviewAction,
    ScoreReviewActionAdvancedInfo,
    format_score,
    parse_score,
)


def score_request(score=None, review=None):
    params = {SUBMIT_SCORE: ["Submit"]}
    if score is not None:
        params["score"] = [score]
    if review is not None:
        params["review"] = [review]
    return ActionRequest(params)


@pytest.fixture
def work_item(services, submitter):
    return services.items.create(submitter.id, "scoreReviewStep")


@pytest.fixture
def step(services):
    return services.workflow.workflow.get_step("scoreReviewStep")


@pytest.fixture
def reviewer_context(reviewers):
    return Context(current_user=reviewers[0])


def make_action(services, max_value="10", description_required=False):
    return ScoreReviewAction(services.metadata, services.configuration,
                             max_value=Decimal(max_value), description_required=description_required)


class TestParseScore:

    @pytest.mark.parametrize("raw,expected", [
        ("8.5", Decimal("8.5")),
        ("8,5", Decimal("8.5")),
        ("9", Decimal("9")),
        (" 7.25 ", Decimal("7.25")),
        ("-2", Decimal("-2")),
    ])
    def test_valid_scores(self, raw, expected):
        assert parse_score(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "bad", "8.5.1", "NaN", "Infinity", "1_0", "8,5,0"])
    def test_invalid_scores(self, raw):
        assert parse_score(raw) is None

    def test_format_score_rounds_half_up(self):
        assert format_score(Decimal("8.875")) == "8.88"
        assert format_score(Decimal("7")) == "7.00"
        assert format_score(Decimal("8.5")) == "8.50"
        assert format_score(Decimal("8.885")) == "8.89"

    def test_format_score_beyond_default_precision(self):
        assert format_score(Decimal("-1e30")) == "-1000000000000000000000000000000.00"
        assert format_score(Decimal("-" + "9" * 27 + ".995")) == "-1" + "0" * 27 + ".00"

    def test_parse_rejects_magnitudes_outside_decimal_range(self):
        assert parse_score("-1e30") == Decimal("-1e30")
        assert parse_score("-1e1000000") is None
        assert parse_score("1e-1000000") is None


class TestScoreReviewExecute:

    def test_request_without_submit_score_is_cancel(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, ActionRequest({"score": ["5"]}))

        assert outcome.type is OutcomeType.CANCEL
        assert services.metadata.get(work_item.id, SCORE_FIELD) == []

    def test_other_submit_button_is_cancel(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        request = ActionRequest({RETURN_TO_POOL: ["x"], "submit_other": ["x"]})
        outcome = action.execute(reviewer_context, work_item, step, request)
        assert outcome.type is OutcomeType.CANCEL

    def test_valid_score_with_review(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, score_request("8,5", "Good work"))

        assert outcome.is_complete
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["8.5"]
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == ["8.50 - Good work"]

    def test_valid_integral_score_without_review(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, score_request("9"))

        assert outcome.is_complete
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["9"]
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == []

    def test_blank_review_is_not_stored(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        action.execute(reviewer_context, work_item, step, score_request("6", "   "))
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == []

    def test_score_equal_to_max_is_accepted(self, services, reviewer_context, work_item, step):
        action = make_action(services, max_value="10")
        outcome = action.execute(reviewer_context, work_item, step, score_request("10.00"))
        assert outcome.is_complete

    def test_score_above_max_is_error_and_writes_nothing(self, services, reviewer_context, work_item, step):
        action = make_action(services, max_value="10")
        outcome = action.execute(reviewer_context, work_item, step, score_request("10.01", "too high"))

        assert outcome.type is OutcomeType.ERROR
        assert services.metadata.get(work_item.id, SCORE_FIELD) == []
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == []

    @pytest.mark.parametrize("raw", ["bad", "", None])
    def test_unparsable_score_is_error(self, services, reviewer_context, work_item, step, raw):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, score_request(raw, "text"))

        assert outcome.type is OutcomeType.ERROR
        assert services.metadata.get(work_item.id, SCORE_FIELD) == []

    def test_missing_required_review_is_error(self, services, reviewer_context, work_item, step):
        action = make_action(services, description_required=True)
        outcome = action.execute(reviewer_context, work_item, step, score_request("7", ""))

        assert outcome.type is OutcomeType.ERROR
        assert services.metadata.get(work_item.id, SCORE_FIELD) == []

    def test_required_review_present(self, services, reviewer_context, work_item, step):
        action = make_action(services, description_required=True)
        outcome = action.execute(reviewer_context, work_item, step, score_request("7", "Solid"))
        assert outcome.is_complete

    def test_negative_score_has_no_floor(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, score_request("-2"))

        assert outcome.is_complete
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["-2"]

    def test_scores_accumulate_in_order(self, services, reviewer_context, work_item, step, reviewers):
        action = make_action(services)
        action.execute(reviewer_context, work_item, step, score_request("8.5"))
        action.execute(Context(current_user=reviewers[1]), work_item, step, score_request("9,25"))

        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["8.5", "9.25"]

    def test_entries_record_the_reviewer(self, services, reviewer_context, work_item, step, reviewers):
        action = make_action(services)
        action.execute(reviewer_context, work_item, step, score_request("8", "Fine"))

        [score_entry] = services.metadata.get_records(work_item.id, SCORE_FIELD)
        [review_entry] = services.metadata.get_records(work_item.id, REVIEW_FIELD)
        assert score_entry.authority == reviewers[0].id
        assert review_entry.authority == reviewers[0].id

    def test_second_score_from_same_reviewer_is_error(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        first = action.execute(reviewer_context, work_item, step, score_request("9", "first"))
        second = action.execute(reviewer_context, work_item, step, score_request("3", "second"))

        assert first.is_complete
        assert second.type is OutcomeType.ERROR
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["9"]
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == ["9.00 - first"]

    def test_large_negative_score_is_stored(self, services, reviewer_context, work_item, step):
        action = make_action(services)
        outcome = action.execute(reviewer_context, work_item, step, score_request("-1e30", "ok"))

        assert outcome.is_complete
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["-1E+30"]
        assert services.metadata.get(work_item.id, REVIEW_FIELD) == [
            "-1000000000000000000000000000000.00 - ok"
        ]


class TestScoreReviewConfiguration:

    @pytest.mark.parametrize("max_value", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_max_falls_back_to_default(self, temp_db, submitter, max_value):
        services = build_services(ConfigurationService({"action.scorereviewaction.max-value": max_value}))
        work_item = services.items.create(submitter.id, "scoreReviewStep")
        step = services.workflow.workflow.get_step("scoreReviewStep")
        action = services.workflow.get_action(step)
        context = Context(current_user=submitter)

        assert action.max_value == Decimal("10")
        assert action.execute(context, work_item, step, score_request("garbage")).type is OutcomeType.ERROR
        assert action.execute(context, work_item, step, score_request("10.5")).type is OutcomeType.ERROR
        assert services.metadata.get(work_item.id, SCORE_FIELD) == []

        assert action.execute(context, work_item, step, score_request("7")).is_complete
        assert services.metadata.get(work_item.id, SCORE_FIELD) == ["7"]


class TestScoreReviewOptions:

    def test_default_options(self, services):
        action = make_action(services)
        assert action.get_options() == [SUBMIT_SCORE, RETURN_TO_POOL]
        assert action.get_advanced_options() == [SUBMIT_SCORE]
        assert action.is_advanced()

    def test_edit_metadata_option_when_enabled(self, services, configuration):
        configuration.set_property("workflow.reviewer.file-edit", "true")
        action = make_action(services)
        assert action.get_options() == [SUBMIT_SCORE, SUBMIT_EDIT_METADATA, RETURN_TO_POOL]


class TestScoreReviewAdvancedInfo:

    def test_fingerprint_matches_canonical_string(self):
        info = ScoreReviewActionAdvancedInfo(description_required=True, max_value=Decimal("10"), type=SUBMIT_SCORE)
        info.generate_id(SUBMIT_SCORE)

        expected = hashlib.md5(b"submit_score;descriptionRequired,true;maxValue,10.00").hexdigest()
        assert info.id == expected

    def test_identical_values_give_identical_fingerprints(self):
        first = ScoreReviewActionAdvancedInfo(False, Decimal("10"), SUBMIT_SCORE)
        second = ScoreReviewActionAdvancedInfo(False, Decimal("10.000"), SUBMIT_SCORE)
        assert first.generate_id(SUBMIT_SCORE) == second.generate_id(SUBMIT_SCORE)

    def test_different_max_value_changes_fingerprint(self):
        first = ScoreReviewActionAdvancedInfo(False, Decimal("10"), SUBMIT_SCORE)
        second = ScoreReviewActionAdvancedInfo(False, Decimal("10.5"), SUBMIT_SCORE)
        assert first.generate_id(SUBMIT_SCORE) != second.generate_id(SUBMIT_SCORE)

    def test_action_advanced_info(self, services):
        action = make_action(services, max_value="5", description_required=True)
        [info] = action.get_advanced_info()

        data = info.to_dict()
        assert data["type"] == SUBMIT_SCORE
        assert data["descriptionRequired"] is True
        assert data["maxValue"] == 5.0
        assert data["id"] == hashlib.md5(b"submit_score;descriptionRequired,true;maxValue,5.00").hexdigest()
