from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from dependencies.auth import get_current_user, get_storage, require_committee_manager
from schemas.message_schema import (
    DirectMessageIn, GroupMemberAdd, GroupMessageIn, MessageCreate, MessageGroupCreate,
    MessageGroupMemberOut, MessageGroupOut, MessageGroupUpdate, MessageOut
)
from schemas.user_schema import Role, UserInDB
from storage.errors import NotFoundError
from storage.interface import Storage

router = APIRouter()


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_direct_message(
    data: DirectMessageIn,
    user: UserInDB = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if await storage.get_user(data.to_user_id) is None:
        raise HTTPException(status_code=404, detail="Recipient not found")
    return await storage.create_message(
        MessageCreate(from_user_id=user.id, to_user_id=data.to_user_id, content=data.content)
    )


@router.get("", response_model=List[MessageOut])
async def list_messages(user: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await storage.get_messages_by_user(user.id)


@router.get("/from-groups", response_model=List[MessageOut])
async def list_group_messages(user: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await storage.get_group_messages_for_user(user.id)


@router.patch("/{message_id}/read", response_model=MessageOut)
async def mark_read(
    message_id: int,
    user: UserInDB = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    message = await storage.get_message(message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    if message.to_user_id != user.id and user.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the recipient can mark a message read")
    return await storage.mark_message_as_read(message_id)


@router.get("/groups", response_model=List[MessageGroupOut])
async def list_groups(_: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await storage.get_message_groups()


@router.post("/groups", response_model=MessageGroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: MessageGroupCreate,
    user: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_message_group(data.name, data.description, user.id)


@router.get("/groups/{group_id}", response_model=MessageGroupOut)
async def get_group(group_id: int, _: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    group = await storage.get_message_group_by_id(group_id)
    if group is None:
        raise NotFoundError("Message group", group_id)
    return group


@router.patch("/groups/{group_id}", response_model=MessageGroupOut)
async def update_group(
    group_id: int,
    data: MessageGroupUpdate,
    _: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    return await storage.update_message_group(group_id, name=data.name, description=data.description)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: int,
    _: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    await storage.delete_message_group(group_id)


@router.get("/groups/{group_id}/members", response_model=List[MessageGroupMemberOut])
async def list_group_members(
    group_id: int,
    _: UserInDB = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if await storage.get_message_group_by_id(group_id) is None:
        raise NotFoundError("Message group", group_id)
    return await storage.get_group_members(group_id)


@router.post("/groups/{group_id}/members", response_model=MessageGroupMemberOut,
             status_code=status.HTTP_201_CREATED)
async def add_group_member(
    group_id: int,
    data: GroupMemberAdd,
    user: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    return await storage.add_member_to_group(group_id, data.member_id, user.id)


@router.delete("/groups/{group_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_group_member(
    group_id: int,
    member_id: int,
    _: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    await storage.remove_member_from_group(group_id, member_id)


@router.post("/groups/{group_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_group_message(
    group_id: int,
    data: GroupMessageIn,
    user: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    return await storage.send_message_to_group(user.id, group_id, data.content)


@router.get("/groups/{group_id}/messages", response_model=List[MessageOut])
async def list_group_history(
    group_id: int,
    _: UserInDB = Depends(require_committee_manager),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_messages_for_group(group_id)
