"""
Request template management.
"""

from typing import Any, Dict, List, Optional, Union

from hrportal.core.exceptions import InvalidStateError, ResourceNotFoundError
from hrportal.models.base import AuditAction, new_id
from hrportal.models.workflow import ApprovalStepTemplate, QuizQuestion, RequestTemplate
from hrportal.repositories.audit import AuditLogRepository
from hrportal.repositories.workflow import RequestRepository, RequestTemplateRepository
from hrportal.schemas.workflow import (
    ApprovalStepTemplateCreate,
    RequestTemplateCreate,
    RequestTemplateResponse,
    RoleApprover,
    SpecificUserApprover,
    UserGroupApprover,
)
from hrportal.services.base.audit_service import AuditService
from hrportal.services.base.base_service import BaseService
from hrportal.services.base.service_result import ServiceResult


class RequestTemplateService(BaseService):
    """
    Create, look up, deactivate and delete request templates.

    A template referenced by any request is never deleted; deactivating it
    hides it from new submissions instead.
    """

    ENTITY_TYPE = "RequestTemplate"

    def create_template(
        self,
        payload: Union[RequestTemplateCreate, Dict[str, Any]],
        actor_id: Optional[str] = None,
    ) -> ServiceResult[RequestTemplateResponse]:
        try:
            data = payload if isinstance(payload, RequestTemplateCreate) else self._parse(RequestTemplateCreate, **payload)
            with self.tx.start() as ctx:
                template = RequestTemplate(
                    id=new_id(),
                    name=data.name,
                    description=data.description,
                    category=data.category,
                    requires_approval=data.requires_approval,
                    is_vacation_request=data.is_vacation_request,
                    passing_score=data.passing_score,
                    is_active=True,
                    created_by_id=actor_id,
                )
                by_order = {}
                for step in sorted(data.steps, key=lambda s: s.step_order):
                    step_template = self._build_step(template.id, step)
                    by_order[step.step_order] = step_template
                    template.step_templates.append(step_template)
                for question in data.quiz_questions:
                    scoped = by_order.get(question.step_order) if question.step_order is not None else None
                    template.quiz_questions.append(
                        QuizQuestion(
                            id=new_id(),
                            template_id=template.id,
                            step_template_id=scoped.id if scoped is not None else None,
                            question=question.question,
                            options=[o.model_dump() for o in question.options],
                            order=question.order,
                        )
                    )

                RequestTemplateRepository(ctx.session).create(template)
                AuditService(AuditLogRepository(ctx.session)).record_change(
                    self.ENTITY_TYPE,
                    template.id,
                    AuditAction.TEMPLATE_CREATED,
                    actor_id,
                    new_value={
                        "name": template.name,
                        "steps": len(template.step_templates),
                        "questions": len(template.quiz_questions),
                    },
                )
                response = RequestTemplateResponse.model_validate(template)
        except Exception as e:
            return self._handle_exception(e, "create template", None, {"actor_id": actor_id})

        self._logger.info(f"Template created: {response.name}", extra={"template_id": response.id})
        return ServiceResult.success(response, message="Template created")

    def get_template(self, template_id: str) -> ServiceResult[RequestTemplateResponse]:
        try:
            with self.tx.start() as ctx:
                template = RequestTemplateRepository(ctx.session).get_by_id(template_id)
                response = RequestTemplateResponse.model_validate(template)
        except Exception as e:
            return self._handle_exception(e, "get template", template_id)
        return ServiceResult.success(response)

    def list_active_templates(self) -> ServiceResult[List[RequestTemplateResponse]]:
        try:
            with self.tx.start() as ctx:
                templates = RequestTemplateRepository(ctx.session).find_active()
                response = [RequestTemplateResponse.model_validate(t) for t in templates]
        except Exception as e:
            return self._handle_exception(e, "list templates")
        return ServiceResult.success(response, metadata={"count": len(response)})

    def deactivate_template(self, template_id: str, actor_id: Optional[str] = None) -> ServiceResult[RequestTemplateResponse]:
        try:
            with self.tx.start() as ctx:
                template = RequestTemplateRepository(ctx.session).get_by_id(template_id)
                if not template.is_active:
                    raise InvalidStateError(
                        f"Template {template.name} is already inactive",
                        current_state="inactive",
                    )
                template.is_active = False
                AuditService(AuditLogRepository(ctx.session)).record_change(
                    self.ENTITY_TYPE,
                    template.id,
                    AuditAction.TEMPLATE_DEACTIVATED,
                    actor_id,
                    old_value={"is_active": True},
                    new_value={"is_active": False},
                )
                ctx.session.flush()
                response = RequestTemplateResponse.model_validate(template)
        except Exception as e:
            return self._handle_exception(e, "deactivate template", template_id)

        self._logger.info(f"Template deactivated: {template_id}")
        return ServiceResult.success(response, message="Template deactivated")

    def delete_template(self, template_id: str, actor_id: Optional[str] = None) -> ServiceResult[bool]:
        try:
            with self.tx.start() as ctx:
                templates = RequestTemplateRepository(ctx.session)
                template = templates.find_by_id(template_id)
                if template is None:
                    raise ResourceNotFoundError("RequestTemplate", template_id)
                referencing = RequestRepository(ctx.session).count_by_template(template_id)
                if referencing:
                    raise InvalidStateError(
                        f"Template {template.name} is referenced by {referencing} request(s); deactivate it instead",
                        current_state="referenced",
                        details={"request_count": referencing},
                    )
                AuditService(AuditLogRepository(ctx.session)).record_change(
                    self.ENTITY_TYPE,
                    template.id,
                    AuditAction.TEMPLATE_DELETED,
                    actor_id,
                    old_value={"name": template.name},
                )
                templates.delete(template)
        except Exception as e:
            return self._handle_exception(e, "delete template", template_id)

        self._logger.info(f"Template deleted: {template_id}")
        return ServiceResult.success(True, message="Template deleted")

    @staticmethod
    def _build_step(template_id: str, step: ApprovalStepTemplateCreate) -> ApprovalStepTemplate:
        approver = step.approver
        return ApprovalStepTemplate(
            id=new_id(),
            template_id=template_id,
            step_order=step.step_order,
            approver_type=approver.approver_type,
            approver_role=approver.role if isinstance(approver, RoleApprover) else None,
            approver_user_id=approver.user_id if isinstance(approver, SpecificUserApprover) else None,
            approver_group_id=approver.group_id if isinstance(approver, UserGroupApprover) else None,
            requires_quiz=step.requires_quiz,
            passing_score=step.passing_score,
        )
