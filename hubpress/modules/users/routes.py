"""
Users Routes
============

- GET /users                    -- all users (admin)
- GET /users/search?name=<re>   -- regex search on username / first / last name (admin)
- GET /users/profile/<id>       -- one user
- PATCH /users/profile          -- update own profile, optional `image` upload
- DELETE /users/delete/<id>     -- delete a user and their image (admin)
"""

import logging
import re
import sqlite3
from flask import g, jsonify, request
from . import users_bp
from ..auth import UserDatabase, protect, restrict_to, serialize_user
from ..auth.routes import get_payload
from ...core.errors import ApiError, StorageError
from ...core.storage import (
    delete_file, discard_file, generate_image_key, read_upload, upload_file, with_signed_image,
)

logger = logging.getLogger(__name__)

PROFILE_INPUTS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'username': 'username',
    'bio': 'bio',
}


def _public_user(user):
    return with_signed_image(serialize_user(user))


@users_bp.route('', methods=['GET'])
@protect
@restrict_to('admin')
def all_users():
    """List every user"""
    logger.info('Fetching all users')
    try:
        users = [_public_user(u) for u in UserDatabase.get_all_users()]
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"An error occurred while fetching users: {e}")
        raise ApiError(500, 'An error occurred while fetching users.')

    logger.info(f"Fetched {len(users)} users")
    return jsonify(users)


@users_bp.route('/search', methods=['GET'])
@protect
@restrict_to('admin')
def search_user():
    """Regex match against username, first name and last name"""
    name = request.args.get('name', '')
    if not name:
        raise ApiError(400, 'Provide a name to search for.')

    try:
        re.compile(name)
    except re.error:
        raise ApiError(400, f"Invalid search pattern: {name}")

    logger.info(f"Searching for user with name {name}")
    try:
        users = [_public_user(u) for u in UserDatabase.search_users(name)]
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"An error occurred while searching for the user: {e}")
        raise ApiError(500, 'An error occurred while searching for the user.')

    if not users:
        logger.warning(f"User with name {name} not found")
        return jsonify({'message': 'User not found.'}), 404

    logger.info(f"Found {len(users)} users matching {name}")
    return jsonify(users)


@users_bp.route('/profile/<int:user_id>', methods=['GET'])
@protect
def user_profile(user_id):
    """Get one user's profile"""
    try:
        user = UserDatabase.get_user_by_id(user_id)
        if not user:
            return jsonify({'message': 'User not found.'}), 404
        profile = _public_user(user)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"An error occurred while fetching user profile: {e}")
        raise ApiError(500, 'An error occurred while fetching user profile.')

    logger.info(f"Fetched user profile with id {user_id}")
    return jsonify(profile)


@users_bp.route('/profile', methods=['PATCH'])
@protect
def update_profile():
    """Update the current user's profile fields and/or image"""
    data = get_payload()
    updates = {
        column: data[field]
        for field, column in PROFILE_INPUTS.items()
        if field in data and data[field] is not None
    }
    upload = read_upload(request.files, 'image')

    if not updates and not upload:
        raise ApiError(400, 'Nothing to update.')

    if 'username' in updates and not str(updates['username']).strip():
        raise ApiError(400, 'Username cannot be empty.')

    user = g.user
    old_image = user.get('image')

    new_image = None
    try:
        if upload:
            file_bytes, content_type = upload
            new_image = upload_file(file_bytes, generate_image_key(), content_type)
            updates['image'] = new_image

        try:
            updated = UserDatabase.update_profile(user['id'], **updates)
        except sqlite3.Error:
            if new_image:
                discard_file(new_image)
            raise

        if upload and old_image:
            delete_file(old_image)

        profile = _public_user(updated)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"An error occurred while updating profile {user['id']}: {e}")
        raise ApiError(500, 'An error occurred while updating the profile.')

    logger.info(f"Updated profile for user {user['id']}")
    return jsonify({
        'status': 'success',
        'message': 'Profile updated successfully.',
        'user': profile,
    }), 200


@users_bp.route('/delete/<int:user_id>', methods=['DELETE'])
@protect
@restrict_to('admin')
def delete_user(user_id):
    """Delete a user and their stored image"""
    logger.info(f"Deleting user with id {user_id}")
    try:
        deleted_user = UserDatabase.delete_user(user_id)
        if not deleted_user:
            logger.warning(f"User with id {user_id} not found")
            return jsonify({'message': 'User not found.'}), 404

        delete_file(deleted_user.get('image'))
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"An error occurred while deleting the user: {e}")
        raise ApiError(500, 'An error occurred while deleting the user.')

    logger.info(f"Deleted user with id {user_id}")
    return jsonify({'message': 'User deleted successfully.'})
