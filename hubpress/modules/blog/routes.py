"""
Blog Routes
===========

- POST /blog/post                -- create a post (multipart, file `blogImage`)
- GET /blog/all                  -- all posts, newest first
- GET /blog/category/<category>  -- posts in a category
- GET /blog/id/<id>              -- one post
- GET /blog/slug/<slug>          -- one post by slug
- GET /blog/search?query=<re>    -- case-insensitive regex search
- GET /blog/latest               -- three most recently published posts
- GET /blog/recommended          -- the editor's pick
- PATCH /blog/update/<id>        -- edit a post (author or admin)
- DELETE /blog/delete/<id>       -- delete a post (author or admin)
- DELETE /blog/del-all           -- delete every post (admin)
"""

import logging
import re
import sqlite3
from flask import g, jsonify, request
from . import blog_bp
from .database import BlogDatabase, serialize_blog
from ..auth import protect, restrict_to
from ..auth.routes import get_payload
from ...core.errors import ApiError, StorageError
from ...core.logging_service import LoggingService
from ...core.storage import (
    delete_file, discard_file, generate_image_key, read_upload, upload_file, with_signed_image,
)

logger = logging.getLogger(__name__)

TEXT_INPUTS = ('title', 'description', 'content', 'category')


def _public_blog(blog):
    return with_signed_image(serialize_blog(blog))


def _public_blogs(blogs):
    return [_public_blog(blog) for blog in blogs]


def _failed(message, status_code):
    return jsonify({'status': 'Failed', 'message': message}), status_code


def _can_edit(user, blog):
    return user['role'] == 'admin' or user['id'] == blog['author_id']


def _parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@blog_bp.route('/post', methods=['POST'])
@protect
def create_blog():
    """Create a post, then upload its image; the row is removed if the upload fails"""
    title = (request.form.get('title') or '').strip()
    content = (request.form.get('content') or '').strip()

    image = request.files.get('blogImage')
    if not image or not image.filename or not title or not content:
        return jsonify({'message': 'Missing required fields'}), 400

    file_bytes, content_type = read_upload(request.files, 'blogImage')
    image_key = generate_image_key()
    user = g.user

    try:
        blog = BlogDatabase.create_blog(
            title,
            content,
            author_id=user['id'],
            author_name=user.get('username'),
            description=request.form.get('description'),
            category=request.form.get('category'),
            image=image_key,
        )
    except sqlite3.Error as e:
        logger.error(f"Error creating blog: {e}")
        raise ApiError(500, 'internal server error')

    uploaded = False
    try:
        upload_file(file_bytes, image_key, content_type)
        uploaded = True
        body = _public_blog(blog)
    except StorageError as e:
        logger.error(f"Image upload failed for blog {blog['id']}, removing it: {e}")
        BlogDatabase.delete_blog(blog['id'])
        if uploaded:
            discard_file(image_key)
        raise ApiError(500, 'internal server error')

    logger.info(f"Blog created successfully: {blog['id']} ({blog['slug']})")
    LoggingService.log_user_action('blog', 'create', user['id'], {'blog_id': blog['id']})
    return jsonify({
        'status': 'success',
        'blog': body,
        'message': 'Blog created successfully.',
    }), 201


@blog_bp.route('/all', methods=['GET'])
def all_blogs():
    try:
        blogs = _public_blogs(BlogDatabase.get_all_blogs())
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving blogs: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f"Retrieved {len(blogs)} blogs")
    return jsonify(blogs), 200


@blog_bp.route('/category/<category>', methods=['GET'])
def blogs_by_category(category):
    try:
        blogs = _public_blogs(BlogDatabase.get_blogs_by_category(category))
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving blogs for category {category}: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f'Retrieved {len(blogs)} blogs for category "{category}"')
    return jsonify(blogs), 200


@blog_bp.route('/id/<int:blog_id>', methods=['GET'])
def blog_by_id(blog_id):
    try:
        blog = BlogDatabase.get_blog_by_id(blog_id)
        if not blog:
            logger.info(f'Blog with ID "{blog_id}" not found.')
            return _failed('Blog not found.', 404)
        body = _public_blog(blog)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving blog {blog_id}: {e}")
        raise ApiError(500, 'internal server error')

    return jsonify(body), 200


@blog_bp.route('/slug/<slug>', methods=['GET'])
def blog_by_slug(slug):
    try:
        blog = BlogDatabase.get_blog_by_slug(slug)
        if not blog:
            logger.info(f'Blog with slug "{slug}" not found.')
            return _failed('Blog not found.', 404)
        body = _public_blog(blog)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving blog {slug}: {e}")
        raise ApiError(500, 'internal server error')

    return jsonify(body), 200


@blog_bp.route('/search', methods=['GET'])
def search_blogs():
    """Regex search over title, description, content and category"""
    query = request.args.get('query', '').strip()
    if not query:
        raise ApiError(400, 'Provide a search query.')

    try:
        re.compile(query)
    except re.error:
        raise ApiError(400, f"Invalid search pattern: {query}")

    try:
        blogs = _public_blogs(BlogDatabase.search_blogs(query))
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error searching blogs for {query}: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f'Search "{query}" matched {len(blogs)} blogs')
    return jsonify({'blogs': blogs}), 200


@blog_bp.route('/latest', methods=['GET'])
def latest_blogs():
    try:
        blogs = _public_blogs(BlogDatabase.get_latest_blogs())
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving latest posts: {e}")
        raise ApiError(500, 'Could not retrieve latest posts.')

    return jsonify(blogs), 200


@blog_bp.route('/recommended', methods=['GET'])
def recommended_blog():
    try:
        blog = BlogDatabase.get_recommended_blog()
        if not blog:
            return _failed('No recommended blog found.', 404)
        body = _public_blog(blog)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error retrieving recommended post: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f"Retrieved recommended post {blog['id']}")
    return jsonify(body), 200


@blog_bp.route('/update/<int:blog_id>', methods=['PATCH'])
@protect
def update_blog(blog_id):
    """Edit a post's text fields, image or editor's-pick flag"""
    user = g.user
    data = get_payload()

    try:
        blog = BlogDatabase.get_blog_by_id(blog_id)
    except sqlite3.Error as e:
        logger.error(f"Error loading blog {blog_id}: {e}")
        raise ApiError(500, 'internal server error')

    if not blog:
        return _failed('Blog not found..', 404)
    if not _can_edit(user, blog):
        logger.info(f"User {user['id']} is not allowed to edit blog {blog_id}")
        return _failed('You are not allowed to perform this action.', 403)

    updates = {field: data[field] for field in TEXT_INPUTS if data.get(field) is not None}
    if 'title' in updates and not str(updates['title']).strip():
        raise ApiError(400, 'Title cannot be empty.')

    if 'recommendedByEditor' in data:
        if user['role'] != 'admin':
            return _failed('Only admins can recommend a blog.', 403)
        updates['recommended_by_editor'] = _parse_bool(data['recommendedByEditor'])

    upload = read_upload(request.files, 'blogImage')
    if not updates and not upload:
        raise ApiError(400, 'Nothing to update.')

    new_image = None
    try:
        if upload:
            file_bytes, content_type = upload
            new_image = upload_file(file_bytes, generate_image_key(), content_type)
            updates['image'] = new_image

        try:
            updated = BlogDatabase.update_blog(blog_id, **updates)
        except sqlite3.Error:
            if new_image:
                discard_file(new_image)
            raise

        if upload and blog.get('image'):
            delete_file(blog['image'])

        body = _public_blog(updated)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error updating blog {blog_id}: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f"Updated blog {blog_id}")
    LoggingService.log_user_action('blog', 'update', user['id'], {'blog_id': blog_id})
    return jsonify({
        'status': 'success',
        'blog': body,
        'message': 'Blog updated successfully.',
    }), 200


@blog_bp.route('/delete/<int:blog_id>', methods=['DELETE'])
@protect
def delete_blog(blog_id):
    """Delete a post and its image (author or admin)"""
    user = g.user

    try:
        blog = BlogDatabase.get_blog_by_id(blog_id)
        if not blog:
            logger.info(f'Blog with ID "{blog_id}" not found.')
            return _failed('Blog not found..', 404)

        if not _can_edit(user, blog):
            logger.info('User is not allowed to perform this action.')
            return _failed('You are not allowed to perform this action.', 403)

        delete_file(blog.get('image'))
        deleted = BlogDatabase.delete_blog(blog_id)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error deleting blog {blog_id}: {e}")
        raise ApiError(500, 'Internal server error.')

    logger.info(f"Deleted blog {blog_id}")
    LoggingService.log_user_action('blog', 'delete', user['id'], {'blog_id': blog_id})
    return jsonify({
        'status': 'success',
        'message': serialize_blog(deleted),
    }), 200


@blog_bp.route('/del-all', methods=['DELETE'])
@protect
@restrict_to('admin')
def delete_all_blogs():
    """Delete every post and its image"""
    try:
        images, deleted_count = BlogDatabase.delete_all_blogs()
        for key in images:
            delete_file(key)
    except (sqlite3.Error, StorageError) as e:
        logger.error(f"Error deleting all blogs: {e}")
        raise ApiError(500, 'internal server error')

    logger.info(f"Deleted all blogs: {deleted_count}")
    LoggingService.log_user_action('blog', 'delete_all', g.user['id'], {'count': deleted_count})
    return jsonify({'blogs': {'deletedCount': deleted_count}}), 200
