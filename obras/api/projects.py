"""
Projects Blueprint - project list, detail tabs, budgets and billing.

Thin delivery layer: business logic lives in projects.service,
projects.budgets, billing.milestones and billing.service.
"""

from io import BytesIO

from flask import Blueprint, abort, jsonify, render_template, request, send_file

from obras.api.helpers import backend, json_body, list_arg
from obras.core.errors import BillingError

bp = Blueprint("projects", __name__, url_prefix="/proyectos")

DETAIL_TABS = ("resumen", "detalles", "presupuesto", "facturacion")


def _project_or_404(api, project_id: str) -> dict:
    from obras.projects.service import get_project

    project = get_project(api, project_id)
    if not project:
        abort(404)
    return project


def _billing_payload(project: dict, billing) -> dict:
    from obras.billing.milestones import billing_summary, progress_segments
    from obras.billing.service import billing_budget_total

    budget_total = billing_budget_total(billing, project)
    summary = billing_summary(budget_total, (billing or {}).get("hitos_facturacion") or [])
    return {
        "billing": billing,
        "budget_total": budget_total,
        "summary": summary.to_dict(),
        "progress": progress_segments(summary),
    }


# ---------------------------------------------------------------------------
# Page routes (render templates)
# ---------------------------------------------------------------------------


@bp.route("/")
def index():
    """Project list with stats, search and status/office facets."""
    from obras.clients.service import list_clients
    from obras.offices.service import list_offices
    from obras.projects.service import (
        enrich_projects, filter_projects, list_projects, project_stats,
    )

    api = backend()
    offices = list_offices(api)
    projects = enrich_projects(list_projects(api), list_clients(api), offices)
    stats = project_stats(projects)
    rows = filter_projects(
        projects,
        search=request.args.get("search"),
        statuses=list_arg("status"),
        offices=list_arg("office"),
    )
    return render_template(
        "projects/index.html",
        projects=rows,
        stats=stats,
        offices=offices,
        search=request.args.get("search", ""),
    )


@bp.route("/<project_id>")
def detail(project_id: str):
    """Project detail with tabs: resumen, detalles, presupuesto, facturacion."""
    from obras.billing.service import get_billing_by_project
    from obras.clients.service import get_client
    from obras.projects.budgets import approved_budget, calculate_budget_totals

    tab = request.args.get("tab", "resumen")
    if tab not in DETAIL_TABS:
        abort(404)

    api = backend()
    project = _project_or_404(api, project_id)
    client = get_client(api, project["id_cliente"]) if project.get("id_cliente") else None
    billing = get_billing_by_project(api, project_id) if tab == "facturacion" else None

    budgets = [
        {**b, "totals": calculate_budget_totals(b).to_dict()}
        for b in project.get("presupuestos") or []
    ]
    return render_template(
        "projects/detail.html",
        project=project,
        client=client,
        tab=tab,
        tabs=DETAIL_TABS,
        budgets=budgets,
        approved=approved_budget(project),
        billing=_billing_payload(project, billing) if tab == "facturacion" else None,
    )


# ---------------------------------------------------------------------------
# Projects API
# ---------------------------------------------------------------------------


@bp.route("/api/projects", methods=["GET"])
def api_list_projects():
    from obras.clients.service import list_clients
    from obras.offices.service import list_offices
    from obras.projects.service import (
        enrich_projects, filter_projects, list_projects, project_stats,
    )

    api = backend()
    projects = enrich_projects(list_projects(api), list_clients(api), list_offices(api))
    rows = filter_projects(
        projects,
        search=request.args.get("search"),
        statuses=list_arg("status"),
        offices=list_arg("office"),
    )
    return jsonify({"projects": rows, "stats": project_stats(rows)})


@bp.route("/api/projects/<project_id>", methods=["GET"])
def api_get_project(project_id: str):
    return jsonify(_project_or_404(backend(), project_id))


@bp.route("/api/projects", methods=["POST"])
def api_create_project():
    from obras.projects.service import create_project

    return jsonify(create_project(backend(), json_body())), 201


@bp.route("/api/projects/<project_id>", methods=["PUT"])
def api_update_project(project_id: str):
    from obras.projects.service import update_project

    return jsonify(update_project(backend(), {**json_body(), "id": project_id}))


@bp.route("/api/projects/<project_id>", methods=["DELETE"])
def api_delete_project(project_id: str):
    from obras.projects.service import delete_project

    delete_project(backend(), project_id)
    return "", 204


@bp.route("/api/projects/<project_id>/status", methods=["POST"])
def api_change_status(project_id: str):
    from obras.projects.service import change_status, update_project

    data = json_body()
    api = backend()
    project = _project_or_404(api, project_id)
    updated = change_status(project, data.get("estado"), nota=data.get("nota"))
    return jsonify(update_project(api, updated))


# ---------------------------------------------------------------------------
# Budgets API
# ---------------------------------------------------------------------------


@bp.route("/api/projects/<project_id>/budgets", methods=["POST"])
def api_add_budget(project_id: str):
    """Save the editor's sections as a new draft budget version."""
    from obras.projects.budgets import add_budget_version, build_budget
    from obras.projects.service import update_project

    data = json_body()
    api = backend()
    project = _project_or_404(api, project_id)
    budget = build_budget(
        project,
        data.get("sections") or [],
        tax_rate=data.get("taxRate"),
        discount_rate=data.get("discountRate"),
        nombre=data.get("nombre"),
    )
    update_project(api, add_budget_version(project, budget))
    return jsonify(budget), 201


def _save_sections(project_id: str, budget_id: str, edit):
    """Run ``edit(sections)`` on one budget version and save the project."""
    from obras.projects.budgets import find_budget, replace_budget_sections
    from obras.projects.service import update_project

    api = backend()
    project = _project_or_404(api, project_id)
    sections = [dict(s) for s in find_budget(project, budget_id).get("sections") or []]
    updated = update_project(api, replace_budget_sections(project, budget_id, edit(sections)))
    return jsonify(find_budget(updated, budget_id))


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/sections", methods=["POST"])
def api_add_section(project_id: str, budget_id: str):
    from obras.projects.budgets import new_section

    name = (json_body().get("name") or "").strip()
    return _save_sections(project_id, budget_id, lambda sections: sections + [new_section(name)]), 201


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/sections/<section_id>/duplicate", methods=["POST"])
def api_duplicate_section(project_id: str, budget_id: str, section_id: str):
    """Insert a copy of the section right after the original."""
    from obras.projects.budgets import duplicate_section

    def edit(sections):
        index = next((i for i, s in enumerate(sections) if s.get("id") == section_id), None)
        if index is None:
            abort(404)
        return sections[:index + 1] + [duplicate_section(sections[index])] + sections[index + 1:]

    return _save_sections(project_id, budget_id, edit), 201


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/sections/<section_id>", methods=["DELETE"])
def api_delete_section(project_id: str, budget_id: str, section_id: str):
    from obras.projects.budgets import find_section

    def edit(sections):
        find_section({"sections": sections}, section_id)
        return [s for s in sections if s.get("id") != section_id]

    return _save_sections(project_id, budget_id, edit)


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/sections/<section_id>/concepts", methods=["POST"])
def api_add_concept(project_id: str, budget_id: str, section_id: str):
    from obras.projects.budgets import find_section, new_concept

    data = json_body()
    concept = new_concept(
        referencia=data.get("referencia") or "",
        description=data.get("description") or "",
        quantity=data.get("quantity", 1),
        unit_price=data.get("unitPrice", 0),
    )

    def edit(sections):
        section = find_section({"sections": sections}, section_id)
        section["concepts"] = list(section.get("concepts") or []) + [concept]
        return sections

    return _save_sections(project_id, budget_id, edit), 201


@bp.route(
    "/api/projects/<project_id>/budgets/<budget_id>/sections/<section_id>/concepts/<concept_id>",
    methods=["PUT"],
)
def api_update_concept(project_id: str, budget_id: str, section_id: str, concept_id: str):
    from obras.projects.budgets import find_section, update_concept

    changes = {
        k: v for k, v in json_body().items()
        if k in ("referencia", "description", "quantity", "unitPrice")
    }

    def edit(sections):
        section = find_section({"sections": sections}, section_id)
        concepts = section.get("concepts") or []
        if not any(c.get("id") == concept_id for c in concepts):
            abort(404)
        section["concepts"] = [
            update_concept(c, changes) if c.get("id") == concept_id else c for c in concepts
        ]
        return sections

    return _save_sections(project_id, budget_id, edit)


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/approve", methods=["POST"])
def api_approve_budget(project_id: str, budget_id: str):
    from obras.projects.budgets import approve_budget
    from obras.projects.service import update_project

    api = backend()
    project = _project_or_404(api, project_id)
    return jsonify(update_project(api, approve_budget(project, budget_id)))


@bp.route("/api/projects/<project_id>/budgets/<budget_id>/pdf", methods=["GET"])
def api_budget_pdf(project_id: str, budget_id: str):
    from obras.projects.service import budget_pdf_filename, fetch_budget_pdf

    api = backend()
    project = _project_or_404(api, project_id)
    budget = next(
        (b for b in project.get("presupuestos") or [] if b.get("id") == budget_id), {}
    )
    content, content_type = fetch_budget_pdf(api, project_id, budget_id)
    return send_file(
        BytesIO(content),
        mimetype=content_type,
        as_attachment=True,
        download_name=budget_pdf_filename(project.get("direccion") or "", budget.get("created_at")),
    )


# ---------------------------------------------------------------------------
# Billing API
# ---------------------------------------------------------------------------


@bp.route("/api/projects/<project_id>/billing", methods=["GET"])
def api_get_billing(project_id: str):
    from obras.billing.service import get_billing_by_project

    api = backend()
    project = _project_or_404(api, project_id)
    return jsonify(_billing_payload(project, get_billing_by_project(api, project_id)))


@bp.route("/api/projects/<project_id>/billing", methods=["POST"])
def api_create_billing(project_id: str):
    """Create an empty billing plan from the approved budget."""
    from obras.billing.milestones import new_blank_billing
    from obras.billing.service import create_billing

    api = backend()
    project = _project_or_404(api, project_id)
    created = create_billing(api, new_blank_billing(project))
    return jsonify(_billing_payload(project, created)), 201


@bp.route("/api/projects/<project_id>/billing", methods=["PUT"])
def api_update_billing(project_id: str):
    """
    Save the edited plan after checking it against the budget.

    Milestone totals are recomputed from their entered amounts. A plan
    identical to the stored one is not sent to the backend.
    """
    from obras.billing.milestones import has_unsaved_changes, recalculate_milestones
    from obras.billing.service import billing_budget_total, get_billing_by_project

    api = backend()
    project = _project_or_404(api, project_id)
    billing = {**json_body(), "id_proyecto": project_id}
    budget_total = billing_budget_total(billing, project)
    billing["hitos_facturacion"] = recalculate_milestones(billing.get("hitos_facturacion") or [], budget_total)

    stored = get_billing_by_project(api, project_id)
    if not has_unsaved_changes(stored, billing):
        return jsonify({**_billing_payload(project, stored), "saved": False})
    return jsonify({**_save_plan(api, project, billing), "saved": True})


def _save_plan(api, project: dict, billing: dict) -> dict:
    from obras.billing.milestones import validate_plan
    from obras.billing.service import billing_budget_total, update_billing

    milestones = billing.get("hitos_facturacion") or []
    errors = validate_plan(milestones, billing_budget_total(billing, project))
    if errors:
        raise BillingError(" ".join(errors))
    return _billing_payload(project, update_billing(api, billing))


def _load_billing(api, project_id: str):
    from obras.billing.service import get_billing_by_project

    project = _project_or_404(api, project_id)
    billing = get_billing_by_project(api, project_id)
    if billing is None:
        raise BillingError("El proyecto no tiene plan de facturación.")
    return project, billing


@bp.route("/api/projects/<project_id>/billing/quick-create", methods=["POST"])
def api_quick_create(project_id: str):
    """Append percentage milestones parsed from ``{"text": "30 40 30"}``."""
    from obras.billing.milestones import quick_create_milestones, validate_plan
    from obras.billing.service import billing_budget_total, update_billing
    from obras.projects.budgets import approved_budget

    api = backend()
    project, billing = _load_billing(api, project_id)
    if approved_budget(project) is None:
        raise BillingError("Debes aprobar un presupuesto para añadir un hito.")

    budget_total = billing_budget_total(billing, project)
    existing = billing.get("hitos_facturacion") or []
    added = quick_create_milestones(json_body().get("text", ""), budget_total, start_index=len(existing) + 1)
    milestones = existing + added

    errors = validate_plan(milestones, budget_total)
    if errors:
        raise BillingError(" ".join(errors))
    saved = update_billing(api, {**billing, "hitos_facturacion": milestones})
    return jsonify({**_billing_payload(project, saved), "created": len(added)})


def _transition(project_id: str, milestone_id: str, action):
    from obras.billing.milestones import find_milestone, replace_milestone
    from obras.billing.service import update_billing

    api = backend()
    project, billing = _load_billing(api, project_id)
    milestone = find_milestone(billing, milestone_id)
    if milestone is None:
        abort(404)
    saved = update_billing(api, replace_milestone(billing, action(milestone)))
    return jsonify(_billing_payload(project, saved))


@bp.route("/api/projects/<project_id>/billing/milestones/<milestone_id>/invoice", methods=["POST"])
def api_invoice_milestone(project_id: str, milestone_id: str):
    from obras.billing.milestones import invoice_milestone

    return _transition(project_id, milestone_id, invoice_milestone)


@bp.route("/api/projects/<project_id>/billing/milestones/<milestone_id>/pay", methods=["POST"])
def api_pay_milestone(project_id: str, milestone_id: str):
    from obras.billing.milestones import mark_paid

    return _transition(project_id, milestone_id, mark_paid)


def _milestone_changes() -> dict:
    return {
        k: v for k, v in json_body().items()
        if k in ("nombre", "tipo_de_importe", "importe")
    }


@bp.route("/api/projects/<project_id>/billing/milestones", methods=["POST"])
def api_add_milestone(project_id: str):
    """Append one milestone built from ``{"nombre", "tipo_de_importe", "importe"}``."""
    from obras.billing.milestones import add_milestone, edit_milestone, new_milestone
    from obras.billing.service import billing_budget_total
    from obras.projects.budgets import approved_budget

    api = backend()
    project, billing = _load_billing(api, project_id)
    if approved_budget(project) is None:
        raise BillingError("Debes aprobar un presupuesto para añadir un hito.")

    milestone = edit_milestone(new_milestone(), _milestone_changes(), billing_budget_total(billing, project))
    payload = _save_plan(api, project, add_milestone(billing, milestone))
    return jsonify({**payload, "milestone": milestone}), 201


@bp.route("/api/projects/<project_id>/billing/milestones/<milestone_id>", methods=["PUT"])
def api_update_milestone(project_id: str, milestone_id: str):
    """Edit a milestone's title, amount type or amount."""
    from obras.billing.milestones import edit_milestone, find_milestone, replace_milestone
    from obras.billing.service import billing_budget_total

    api = backend()
    project, billing = _load_billing(api, project_id)
    milestone = find_milestone(billing, milestone_id)
    if milestone is None:
        abort(404)
    updated = edit_milestone(milestone, _milestone_changes(), billing_budget_total(billing, project))
    return jsonify(_save_plan(api, project, replace_milestone(billing, updated)))


@bp.route("/api/projects/<project_id>/billing/milestones/<milestone_id>", methods=["DELETE"])
def api_delete_milestone(project_id: str, milestone_id: str):
    from obras.billing.milestones import find_milestone, remove_milestone

    api = backend()
    project, billing = _load_billing(api, project_id)
    if find_milestone(billing, milestone_id) is None:
        abort(404)
    return jsonify(_save_plan(api, project, remove_milestone(billing, milestone_id)))
