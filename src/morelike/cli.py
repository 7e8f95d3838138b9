import argparse
import json
import logging
from pathlib import Path

from tqdm import tqdm

from .catalog import TMDBCatalog, candidate_from_tmdb
from .config import STATE_PATH, KNOWN_TITLES_PATH
from .learning import (
    FeedbackType,
    MovieAttributes,
    extract_attributes,
    get_feedback,
    preference_summary,
    record_feedback,
    remove_feedback,
    update_config,
)
from .personalize import apply_personalized_ranking
from .pipeline import analyze_reference
from .profiler import load_known_titles, release_era
from .store import clear_learning_state, load_learning_state, save_learning_state

logger = logging.getLogger(__name__)


def cmd_resolve(args: argparse.Namespace) -> None:
    """Resolve a free-text reference and show confidence, profile and filters."""
    known_titles = load_known_titles(args.known_titles)

    with TMDBCatalog() as catalog:
        analysis = analyze_reference(args.text, catalog, known_titles)

    if analysis is None:
        logger.info("No reference title found in that message.")
        return

    if args.json:
        print(json.dumps({
            "title": analysis.extracted.title,
            "year": analysis.extracted.year,
            "match": analysis.match.item.title if analysis.match.item else None,
            "media_type": analysis.match.media_type,
            "confidence": analysis.confidence.level.value,
            "score": analysis.confidence.score,
            "action": analysis.confidence.behavior.action,
            "message": analysis.confidence.behavior.message,
            "profile": analysis.profile.to_dict() if analysis.profile else None,
            "filters": analysis.filters.to_dict() if analysis.filters else None,
        }, indent=2))
        return

    confidence = analysis.confidence
    logger.info(f"Reference: {analysis.extracted.title}" + (f" ({analysis.extracted.year})" if analysis.extracted.year else ""))
    if analysis.match.item:
        item = analysis.match.item
        logger.info(f"Match: {item.title} ({item.release_year or '?'}) [{analysis.match.media_type}]")
    logger.info(f"Confidence: {confidence.display_label} - {confidence.score}/100 ({confidence.explanation})")
    if confidence.behavior.message:
        logger.info(confidence.behavior.message)

    if analysis.profile:
        profile = analysis.profile
        themes = ", ".join(t.value for t in profile.themes) or "none"
        logger.info(
            f"Profile ({profile.source}): {profile.scale.value} scale, {profile.style.value}, "
            f"{profile.audience.value} audience, mass appeal {profile.mass_appeal}, themes: {themes}"
        )
    if analysis.filters:
        filters = analysis.filters
        logger.info(
            f"Filters: {filters.industry_description}, languages {list(filters.include_languages)} "
            f"({filters.language_policy}), min mass appeal {filters.min_mass_appeal}, era {filters.era_flexibility}"
        )
    if analysis.intro:
        logger.info(analysis.intro)


def cmd_feedback(args: argparse.Namespace) -> None:
    """Record, replace or remove feedback for a title."""
    state = load_learning_state(args.state)

    if args.action == "remove":
        state = remove_feedback(state, args.id, args.type)
        save_learning_state(state, args.state)
        logger.info(f"Removed feedback for {args.type} {args.id}")
        return

    attributes = MovieAttributes(
        id=args.id,
        title=args.title or "",
        media_type=args.type,
        genre_ids=tuple(args.genres or ()),
        original_language=args.language or "",
        industry=args.industry,
        release_era=release_era(args.year).value,
        release_year=args.year,
        themes=tuple(args.themes or ()),
        narrative_scale=args.scale,
        audience_type=args.audience,
    )
    previous = get_feedback(state, args.id, args.type)
    state = record_feedback(state, attributes, FeedbackType(args.action), reference_media_id=args.reference)
    save_learning_state(state, args.state)
    logger.info(
        f"Recorded {args.action} for {args.type} {args.id} (was {previous.value}); "
        f"{state.total_likes} likes, {state.total_dislikes} dislikes"
    )


def cmd_rank(args: argparse.Namespace) -> None:
    """Personalize and diversity-rank a JSON file of candidates with reference scores."""
    state = load_learning_state(args.state)
    entries = json.loads(Path(args.candidates).read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        logger.error(f"{args.candidates} must contain a JSON list of candidates")
        return

    ranked = apply_personalized_ranking(
        state,
        tqdm(entries, desc="Scoring", disable=args.quiet),
        get_attributes=lambda e: extract_attributes(candidate_from_tmdb(e, e.get("media_type", "movie"))),
        get_reference_score=lambda e: float(e.get("reference_score", 0.0)),
    )

    if args.json:
        print(json.dumps([
            {
                "id": c.attributes.id,
                "title": c.attributes.title,
                "final_score": round(c.score.final_score, 1),
                "reference_score": c.score.reference_score,
                "preference_adjustment": c.score.preference_adjustment,
                "exploration_bonus": round(c.score.exploration_bonus, 2),
                "confidence": c.score.confidence,
                "explanation": c.score.explanation,
            }
            for c in ranked[:args.limit]
        ], indent=2))
        return

    for i, candidate in enumerate(ranked[:args.limit], 1):
        score = candidate.score
        logger.info(
            f"  {i:2}. {candidate.attributes.title} - {score.final_score:.1f} "
            f"(ref {score.reference_score:.1f}, pref {score.preference_adjustment:+.1f}, "
            f"explore {score.exploration_bonus:.2f}) {'; '.join(score.explanation)}"
        )


def cmd_summary(args: argparse.Namespace) -> None:
    """Show what has been learned so far."""
    state = load_learning_state(args.state)
    summary = preference_summary(state)
    status = "active" if summary.learning_active else f"inactive (needs {state.config.min_feedback_threshold} ratings)"

    logger.info(f"Feedback: {summary.total_feedback} ({state.total_likes} likes, {state.total_dislikes} dislikes)")
    logger.info(f"Learning: {status}")
    logger.info(f"Liked genres: {summary.liked_genres or '-'}")
    logger.info(f"Disliked genres: {summary.disliked_genres or '-'}")
    logger.info(f"Liked languages: {summary.liked_languages or '-'}")
    logger.info(f"Preferred eras: {summary.preferred_eras or '-'}")


def cmd_config(args: argparse.Namespace) -> None:
    """Override learning parameters stored with the state."""
    state = load_learning_state(args.state)
    updates = {
        key: value for key, value in {
            "max_weight": args.max_weight,
            "learning_rate": args.learning_rate,
            "decay_factor": args.decay_factor,
            "min_feedback_threshold": args.min_feedback,
            "preference_influence": args.preference_influence,
            "exploration_factor": args.exploration_factor,
        }.items() if value is not None
    }
    if updates:
        state = update_config(state, **updates)
        save_learning_state(state, args.state)
    for key, value in state.config.to_dict().items():
        logger.info(f"  {key}: {value}")


def cmd_reset(args: argparse.Namespace) -> None:
    """Forget all feedback."""
    if clear_learning_state(args.state):
        logger.info(f"Cleared learning state at {args.state}")
    else:
        logger.info(f"No learning state at {args.state}")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="morelike: 'movies like X' reference analysis and personalization")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--state", type=Path, default=STATE_PATH,
                        help=f"Learning state file (default: {STATE_PATH})")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Resolve a reference title from free text")
    resolve_parser.add_argument("text", help="Message such as 'movies like Baahubali (2015)'")
    resolve_parser.add_argument("--known-titles", type=Path, default=KNOWN_TITLES_PATH,
                                help="Curated known-title table (JSON)")
    resolve_parser.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    resolve_parser.set_defaults(func=cmd_resolve)

    # Feedback command
    feedback_parser = subparsers.add_parser("feedback", help="Record or remove feedback for a title")
    feedback_parser.add_argument("action", choices=["like", "dislike", "neutral", "remove"])
    feedback_parser.add_argument("id", type=int, help="Catalog id of the title")
    feedback_parser.add_argument("--type", choices=["movie", "tv"], default="movie", help="Media type")
    feedback_parser.add_argument("--title", help="Title for display")
    feedback_parser.add_argument("--language", help="Original language code (e.g. te)")
    feedback_parser.add_argument("--genres", type=int, nargs="+", help="Genre ids")
    feedback_parser.add_argument("--year", type=int, help="Release year")
    feedback_parser.add_argument("--industry", help="Cinema industry (e.g. tollywood)")
    feedback_parser.add_argument("--themes", nargs="+", help="Thematic tags")
    feedback_parser.add_argument("--scale", help="Narrative scale")
    feedback_parser.add_argument("--audience", help="Audience type")
    feedback_parser.add_argument("--reference", type=int, help="Id of the reference title this came from")
    feedback_parser.set_defaults(func=cmd_feedback)

    # Rank command
    rank_parser = subparsers.add_parser("rank", help="Personalize a list of scored candidates")
    rank_parser.add_argument("candidates", help="JSON list of catalog records with a 'reference_score'")
    rank_parser.add_argument("--limit", type=int, default=20, help="Number of results to show")
    rank_parser.add_argument("--json", action="store_true", help="Print results as JSON")
    rank_parser.add_argument("--quiet", action="store_true", help="Hide the progress bar")
    rank_parser.set_defaults(func=cmd_rank)

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Show learned preferences")
    summary_parser.set_defaults(func=cmd_summary)

    # Config command
    config_parser = subparsers.add_parser("config", help="Show or override learning parameters")
    config_parser.add_argument("--max-weight", type=float)
    config_parser.add_argument("--learning-rate", type=float)
    config_parser.add_argument("--decay-factor", type=float)
    config_parser.add_argument("--min-feedback", type=int)
    config_parser.add_argument("--preference-influence", type=float)
    config_parser.add_argument("--exploration-factor", type=float)
    config_parser.set_defaults(func=cmd_config)

    # Reset command
    reset_parser = subparsers.add_parser("reset", help="Forget all feedback")
    reset_parser.set_defaults(func=cmd_reset)

    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args.func(args)


if __name__ == "__main__":
    main()
