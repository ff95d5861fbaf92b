from __future__ import annotations

from flask import request

from app.bizadmin.api import (
    ApiError,
    body_id,
    bool_arg,
    bp,
    current_principal,
    ensure_customer_scope,
    get_or_404,
    header_id,
    list_response,
    ok,
    payload,
    require_token,
)
from app.bizadmin.db import db_session
from app.bizadmin.modules.services.models import Service, ServiceRequest
from app.bizadmin.modules.services.service import (
    create_request,
    create_service,
    delete_request,
    delete_service,
    serialize_request,
    serialize_service,
    services_for_customer,
    update_request,
    update_service,
)


# ---------- services ----------
@bp.get("/services")
@require_token()
def services_list():
    s = db_session()
    principal = current_principal()
    single = (request.args.get("id") or "").strip()
    if single:
        if not single.isdigit():
            raise ApiError("Invalid id", 400)
        service = get_or_404(Service, int(single), "Service")
        if principal.is_customer and not service.is_active:
            raise ApiError("Service not found", 404)
        return ok(serialize_service(service))

    q = s.query(Service).order_by(Service.created_at.desc(), Service.id.desc())
    is_active = bool_arg("isActive")
    if principal.is_customer:
        is_active = True
    if is_active is not None:
        q = q.filter(Service.is_active == is_active)
    is_vip = bool_arg("isVip")
    if is_vip is not None:
        q = q.filter(Service.is_vip == is_vip)
    team_id = (request.args.get("teamId") or "").strip()
    if team_id.isdigit():
        q = q.filter(Service.team_id == int(team_id))
    return list_response(q, serialize_service, Service.name, Service.description)


@bp.post("/services")
@require_token("user")
def services_create():
    s = db_session()
    service = create_service(s, payload(), current_principal())
    s.commit()
    return ok(serialize_service(service), 201)


@bp.put("/services")
@require_token("user")
def services_put():
    s = db_session()
    data = payload()
    service = get_or_404(Service, body_id(data), "Service")
    update_service(s, service, data, current_principal())
    s.commit()
    return ok(serialize_service(service))


@bp.get("/services/detailes")
@require_token()
def services_detail():
    service = get_or_404(Service, header_id(), "Service")
    if current_principal().is_customer and not service.is_active:
        raise ApiError("Service not found", 404)
    return ok(serialize_service(service))


@bp.patch("/services/detailes")
@require_token("user")
def services_patch():
    s = db_session()
    service = get_or_404(Service, header_id(), "Service")
    update_service(s, service, payload(), current_principal())
    s.commit()
    return ok(serialize_service(service))


@bp.delete("/services/detailes")
@require_token("user")
def services_delete():
    s = db_session()
    service = get_or_404(Service, header_id(), "Service")
    service_id = str(service.id)
    delete_service(s, service, current_principal())
    s.commit()
    return ok({"_id": service_id}, message="Service deleted")


@bp.get("/services/filterdByCustomer")
@require_token()
def services_by_customer():
    customer_id = header_id("customerId")
    ensure_customer_scope(customer_id)
    return ok([serialize_service(svc) for svc in services_for_customer(db_session(), customer_id)])


# ---------- service requests ----------
@bp.get("/service-requests")
@require_token("user")
def service_requests_list():
    s = db_session()
    q = s.query(ServiceRequest).order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
    for arg, column in (("status", ServiceRequest.status), ("priority", ServiceRequest.priority)):
        value = (request.args.get(arg) or "").strip()
        if value:
            q = q.filter(column == value)
    for arg, column in (("serviceId", ServiceRequest.service_id), ("requestedBy", ServiceRequest.requested_by_id)):
        value = (request.args.get(arg) or "").strip()
        if value.isdigit():
            q = q.filter(column == int(value))
    return list_response(q, serialize_request, ServiceRequest.title, ServiceRequest.requirements)


@bp.post("/service-requests")
@require_token()
def service_requests_create():
    s = db_session()
    req = create_request(s, payload(), current_principal())
    s.commit()
    return ok(serialize_request(req), 201)


@bp.get("/service-requests/detailes")
@require_token("user")
def service_requests_detail():
    return ok(serialize_request(get_or_404(ServiceRequest, header_id(), "Service request")))


@bp.patch("/service-requests/detailes")
@require_token("user")
def service_requests_patch():
    s = db_session()
    req = get_or_404(ServiceRequest, header_id(), "Service request")
    update_request(s, req, payload(), current_principal())
    s.commit()
    return ok(serialize_request(req))


@bp.delete("/service-requests/detailes")
@require_token("user")
def service_requests_delete():
    s = db_session()
    req = get_or_404(ServiceRequest, header_id(), "Service request")
    req_id = str(req.id)
    delete_request(s, req, current_principal())
    s.commit()
    return ok({"_id": req_id}, message="Service request deleted")
