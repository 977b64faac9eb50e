"""
Repository基础类
定义通用的数据访问接口和方法
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.log_utils import get_logger
from app.core.log_messages import log_messages

logger = get_logger(__name__)


class BaseRepository(ABC):
    """Repository基础类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    @abstractmethod
    def model(self) -> Type[Any]:
        """返回Repository对应的模型类"""

    async def get_by_id(self, record_id: Any) -> Optional[Any]:
        """根据ID获取单个记录"""
        try:
            query = select(self.model).filter(self.model.id == record_id)
            result = await self.db.execute(query)
            record = result.scalars().first()

            if record is None:
                logger.warning("记录不存在",
                             operation_name="get_by_id",
                             record_id=record_id,
                             model_name=self.model.__name__)

            return record

        except Exception as e:
            logger.error(log_messages.DB_QUERY_FAILED,
                       operation_name="get_by_id",
                       record_id=record_id,
                       model_name=self.model.__name__,
                       exception=e)
            raise

    async def create(self, **kwargs) -> Any:
        """创建新记录"""
        try:
            instance = self.model(**kwargs)
            self.db.add(instance)
            await self.db.commit()
            await self.db.refresh(instance)

            logger.info(log_messages.DB_UPDATE_SUCCESS,
                       operation_name="create",
                       model_name=self.model.__name__,
                       record_id=instance.id)

            return instance

        except Exception as e:
            await self.db.rollback()
            logger.error(log_messages.DB_UPDATE_FAILED,
                       operation_name="create",
                       model_name=self.model.__name__,
                       exception=e)
            raise

    async def update(self, record_id: Any, **kwargs) -> Optional[Any]:
        """更新记录"""
        try:
            logger.info(log_messages.DB_UPDATE_START,
                       operation_name="update",
                       record_id=record_id,
                       model_name=self.model.__name__,
                       update_fields=list(kwargs.keys()))

            instance = await self.get_by_id(record_id)
            if not instance:
                return None

            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            await self.db.commit()
            await self.db.refresh(instance)

            logger.info(log_messages.DB_UPDATE_SUCCESS,
                       operation_name="update",
                       record_id=record_id,
                       model_name=self.model.__name__)

            return instance

        except Exception as e:
            await self.db.rollback()
            logger.error(log_messages.DB_UPDATE_FAILED,
                       operation_name="update",
                       record_id=record_id,
                       model_name=self.model.__name__,
                       exception=e)
            raise
