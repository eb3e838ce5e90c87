import logging
from dataclasses import dataclass
from fastapi import Request
from sqlalchemy.orm import Session

from wordcoach.coordinator.test_coordinator import TestCoordinator
from wordcoach.services.dictionary_service import DictionaryService
from wordcoach.services.familiar_words_service import FamiliarWordsService
from wordcoach.services.learning_flow_service import LearningFlowService
from wordcoach.services.plan_service import PlanService
from wordcoach.services.question_builder import TestQuestionBuilder
from wordcoach.services.session_service import SessionService
from wordcoach.services.word_management_service import WordManagementService
from wordcoach.utils.remote_client import RemotePlanClient, create_remote_client

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """应用内共享的服务实例"""
    remote_client: RemotePlanClient
    dictionary_service: DictionaryService
    familiar_words_service: FamiliarWordsService
    plan_service: PlanService
    coordinator: TestCoordinator
    learning_flow_service: LearningFlowService


def build_services(db: Session, remote_client: RemotePlanClient = None,
                   dictionary_service: DictionaryService = None) -> AppServices:
    """
    组装服务层

    Args:
        db: 会话历史数据库会话，由协调器长期持有
        remote_client: 远程客户端，默认按配置创建
        dictionary_service: 词典服务，默认创建未加载的新实例
    """
    remote_client = remote_client or create_remote_client()
    dictionary_service = dictionary_service or DictionaryService()

    word_management_service = WordManagementService(remote_client)
    plan_service = PlanService(remote_client, word_management_service)
    familiar_words_service = FamiliarWordsService(remote_client)
    coordinator = TestCoordinator(
        TestQuestionBuilder(dictionary_service),
        remote_client,
        plan_service=plan_service,
        session_service=SessionService(db),
    )
    learning_flow_service = LearningFlowService(coordinator, familiar_words_service, plan_service)

    logger.info("服务层组装完成")
    return AppServices(
        remote_client=remote_client,
        dictionary_service=dictionary_service,
        familiar_words_service=familiar_words_service,
        plan_service=plan_service,
        coordinator=coordinator,
        learning_flow_service=learning_flow_service,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
