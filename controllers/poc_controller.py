from flask import Blueprint, jsonify, request, session

from models.cohort import Cohort
from models.college import College
from models.roles import ADMIN, INTERN, TECH_LEAD
from models.users import User
from utils.auth import current_role, role_required
from utils.errors import BadRequest, NotFound
from utils.ids import id_query, ref_to_str

poc_bp = Blueprint("poc", __name__, url_prefix="/api/poc")


def _scoped_college():
    """The POC's own college; admins pick one with ?collegeId=."""
    if current_role() == ADMIN:
        college_ref = request.args.get("collegeId")
        if not college_ref:
            raise BadRequest("collegeId is required for admin access")
    else:
        user = User.find_by_id(session["user_id"])
        college_ref = user.get("college") if user else None
        if not college_ref:
            raise BadRequest("No college assigned to this account")

    college = College.resolve(college_ref)
    if not college:
        raise NotFound("College not found")
    return college


def _strip(users):
    for user in users:
        user.pop("password", None)
    return users


# ==========================================================
# COLLEGE OVERVIEW
# ==========================================================
@poc_bp.route("/college-overview", methods=["GET"])
@role_required("admin", "POC")
def college_overview():
    college = _scoped_college()
    interns = User.find_by_role(INTERN, college["_id"])
    mentors = User.find_by_role(TECH_LEAD, college["_id"])

    cohort_query = {"isActive": True}
    cohort_query.update(id_query("collegeId", college["_id"]))
    cohorts = list(Cohort.collection().find(cohort_query).sort("startDate", -1))

    return jsonify({
        "college": college,
        "stats": {
            "totalInterns": len(interns),
            "totalMentors": len(mentors),
            "assignedInterns": len([i for i in interns if i.get("assignedTechLead")]),
            "unassignedInterns": len([i for i in interns if not i.get("assignedTechLead")]),
            "internsInCohorts": len([i for i in interns if i.get("cohortId")]),
            "activeCohorts": len(cohorts),
        },
        "cohorts": cohorts,
    })


# ==========================================================
# COLLEGE INTERNS
# ==========================================================
@poc_bp.route("/college-interns", methods=["GET"])
@role_required("admin", "POC")
def college_interns():
    college = _scoped_college()
    interns = _strip(User.find_by_role(INTERN, college["_id"]))

    mentors = {str(m["_id"]): m.get("name") for m in User.find_by_role(TECH_LEAD, college["_id"])}
    for intern in interns:
        intern["mentorName"] = mentors.get(ref_to_str(intern.get("assignedTechLead")))

    return jsonify({"college": {"_id": college["_id"], "name": college["name"]}, "interns": interns, "total": len(interns)})


# ==========================================================
# COLLEGE MENTORS
# ==========================================================
@poc_bp.route("/college-mentors", methods=["GET"])
@role_required("admin", "POC")
def college_mentors():
    college = _scoped_college()
    mentors = _strip(User.find_by_role(TECH_LEAD, college["_id"]))
    interns = User.find_by_role(INTERN, college["_id"])

    for mentor in mentors:
        mentor["internCount"] = len([
            i for i in interns if ref_to_str(i.get("assignedTechLead")) == str(mentor["_id"])
        ])

    return jsonify({"college": {"_id": college["_id"], "name": college["name"]}, "mentors": mentors, "total": len(mentors)})
