import logging
import os
import tempfile
from dataclasses import asdict
from datetime import date
from functools import wraps

from flask import Flask, abort, current_app, flash, jsonify, redirect, render_template, request, send_file, url_for
from werkzeug.datastructures import CombinedMultiDict

from config import Config
from errors import TrackerError
from forms import ActivityLogForm, CompetitionForm, ImportForm, ParticipantForm
from models import AVATARS, ExternalLink, UploadedFile
from storage import JsonStore
from tracker import Tracker
from utils.proofs import classify_proof
from utils.scoring import log_points, sorted_logs

logger = logging.getLogger(__name__)


# ----------------- App Init -----------------
def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = JsonStore(app.config["DATA_FILE"], app.config["PROOF_DIR"])
    app.extensions["tracker"] = Tracker(store)

    register_routes(app)
    return app


def get_tracker():
    return current_app.extensions["tracker"]


def competition_required(view):
    """Redirect to the setup screen until a competition exists."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if get_tracker().competition is None:
            flash("Start a competition first.", "info")
            return redirect(url_for("home"))
        return view(*args, **kwargs)

    return wrapper


def _flash_error(e):
    logger.warning("%s: %s", type(e).__name__, e)
    flash(str(e), e.category)


def _form_errors(form):
    for field_name, errors in form.errors.items():
        label = getattr(form, field_name).label.text
        for error in errors:
            flash(f"{label}: {error}", "danger")


# ----------------- Routes -----------------
def register_routes(app):

    @app.context_processor
    def inject_competition():
        competition = get_tracker().competition
        return {"competition_name": competition.name if competition else None}

    @app.route("/", methods=["GET"])
    def home():
        tracker = get_tracker()
        if tracker.competition is None:
            return render_template("setup.html", form=CompetitionForm())

        return render_template(
            "dashboard.html",
            competition=tracker.competition,
            progress=tracker.progress(),
            leaders=tracker.scoreboard()[:3],
        )

    @app.route("/setup", methods=["POST"])
    def setup():
        form = CompetitionForm(request.form)
        if not form.validate():
            _form_errors(form)
            return redirect(url_for("home"))

        try:
            competition = get_tracker().create_competition(form.name.data, form.duration_days.data)
        except TrackerError as e:
            _flash_error(e)
        else:
            flash(f"{competition.name} started! Day 1 of {competition.duration_days}.", "success")
        return redirect(url_for("home"))

    # ----------------- Participants -----------------
    @app.route("/participants", methods=["GET", "POST"])
    @competition_required
    def participants():
        tracker = get_tracker()
        form = ParticipantForm(request.form)

        if request.method == "POST":
            if form.validate():
                try:
                    p = tracker.add_participant(form.name.data, form.avatar.data or None)
                    flash(f"{p.avatar} {p.name} joined the competition!", "success")
                    return redirect(url_for("participants"))
                except TrackerError as e:
                    _flash_error(e)
            else:
                _form_errors(form)

        cards = [(p, tracker.stats_for(p)) for p in tracker.participants]
        return render_template("participants.html", form=form, cards=cards, avatars=AVATARS)

    @app.route("/participants/<int:participant_id>/delete", methods=["POST"])
    @competition_required
    def delete_participant(participant_id):
        try:
            p = get_tracker().delete_participant(participant_id)
            flash(f"{p.name} was removed.", "info")
        except TrackerError as e:
            _flash_error(e)
        return redirect(url_for("participants"))

    @app.route("/participants/<int:participant_id>")
    @competition_required
    def participant_detail(participant_id):
        tracker = get_tracker()
        try:
            p = tracker.get_participant(participant_id)
        except TrackerError as e:
            _flash_error(e)
            return redirect(url_for("scoreboard"))

        history = [(log, classify_proof(log), log_points(log)) for log in sorted_logs(p)]
        return render_template(
            "participant_detail.html",
            participant=p,
            stats=tracker.stats_for(p),
            history=history,
        )

    # ----------------- Daily Log -----------------
    @app.route("/log", methods=["GET", "POST"])
    @competition_required
    def log_activity():
        tracker = get_tracker()
        if not tracker.participants:
            flash("Add participants first.", "info")
            return redirect(url_for("participants"))

        form = ActivityLogForm(CombinedMultiDict((request.files, request.form)))
        form.participant_id.choices = [(p.id, f"{p.avatar} {p.name}") for p in tracker.participants]

        if request.method == "POST":
            if not form.validate():
                _form_errors(form)
                return render_template("log.html", form=form), 400

            participant_id = form.participant_id.data
            log_date = form.date.data
            try:
                proof, staged = None, None
                if form.completed.data:
                    staged = tracker.store.stage_proof_file(form.proof_file.data, participant_id, log_date)
                    if staged is not None:
                        proof = UploadedFile(path=staged.path, media=staged.media)
                    elif form.proof_url.data:
                        proof = ExternalLink(url=form.proof_url.data)

                entry = tracker.log_activity(participant_id, form.to_entry(proof), staged=staged)
            except TrackerError as e:
                _flash_error(e)
                return render_template("log.html", form=form), 400

            if entry.completed and not classify_proof(entry).viewable:
                flash("No proof - entry will be marked unverified.", "warning")
            flash(f"Activity logged for {log_date.isoformat()} (+{log_points(entry)} pts)!", "success")
            return redirect(url_for("log_activity"))

        return render_template("log.html", form=form)

    # ----------------- Scoreboard -----------------
    @app.route("/scoreboard")
    @competition_required
    def scoreboard():
        return render_template("scoreboard.html", rows=get_tracker().scoreboard())

    @app.route("/proof/<int:participant_id>/<log_date>")
    @competition_required
    def view_proof(participant_id, log_date):
        tracker = get_tracker()
        try:
            day = date.fromisoformat(log_date)
        except ValueError:
            abort(404)

        try:
            log = tracker.get_participant(participant_id).log_for(day)
            info = classify_proof(log) if log else None
            if info is None or not info.viewable:
                flash("No proof for this day.", "warning")
                return redirect(url_for("participant_detail", participant_id=participant_id))

            if isinstance(log.proof, UploadedFile):
                return send_file(tracker.store.resolve_proof_path(log.proof.path))
            return redirect(log.proof.url)
        except TrackerError as e:
            _flash_error(e)
            return redirect(url_for("scoreboard"))

    # ----------------- Settings -----------------
    @app.route("/settings")
    @competition_required
    def settings():
        tracker = get_tracker()
        return render_template(
            "settings.html",
            competition=tracker.competition,
            data_path=tracker.data_path,
            import_form=ImportForm(),
        )

    @app.route("/settings/export")
    @competition_required
    def export_data():
        export_dir = os.path.join(current_app.config["DATA_DIR"], "exports")
        destination = os.path.join(export_dir, f"fitness-data-{date.today().isoformat()}.json")
        try:
            get_tracker().export_document(destination)
        except TrackerError as e:
            _flash_error(e)
            return redirect(url_for("settings"))
        return send_file(destination, as_attachment=True, mimetype="application/json")

    @app.route("/settings/import", methods=["POST"])
    def import_data():
        form = ImportForm(CombinedMultiDict((request.files, request.form)))
        if not form.validate():
            _form_errors(form)
            return redirect(url_for("home"))

        fd, tmp_path = tempfile.mkstemp(suffix=".json")
        os.close(fd)
        try:
            form.document.data.save(tmp_path)
            document = get_tracker().import_document(tmp_path)
            flash(f"Imported {len(document.participants)} participant(s).", "success")
        except TrackerError as e:
            _flash_error(e)
        finally:
            os.remove(tmp_path)
        return redirect(url_for("home"))

    @app.route("/settings/reset", methods=["POST"])
    def reset_competition():
        try:
            get_tracker().reset()
            flash("Competition reset. All data was cleared.", "info")
        except TrackerError as e:
            _flash_error(e)
        return redirect(url_for("home"))

    # ----------------- JSON -----------------
    @app.route("/api/state")
    def api_state():
        tracker = get_tracker()
        competition = tracker.competition
        return jsonify(
            {
                "competition": competition.model_dump(mode="json", by_alias=True) if competition else None,
                "progress": asdict(tracker.progress()),
                "scoreboard": [
                    {
                        "rank": row.rank,
                        "badge": row.badge,
                        "participant": row.participant.model_dump(mode="json", by_alias=True, exclude={"logs"}),
                        "stats": asdict(row.stats),
                    }
                    for row in tracker.scoreboard()
                ],
            }
        )


# ---------------- Main ----------------
if __name__ == "__main__":
    app = create_app()
    app.run(debug=os.environ.get("FLASK_DEBUG") == "1")
