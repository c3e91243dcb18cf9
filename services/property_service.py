import logging
import math

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from models.property import Property
from services.base_service import BaseService
from services.lookup_service import SqlLookupTables, coerce_id
from services.normalizer_service import decode_string_array, encode_string_array
from services.title_service import TitleService, titles_need_refresh

logger = logging.getLogger(__name__)

# Columns a create/update request may set directly; titles are always derived
EDITABLE_FIELDS = (
    'property_id', 'type', 'status', 'province', 'district', 'sub_district',
    'type_id', 'status_id', 'subdistrict_id',
    'size', 'size_prefix', 'price', 'price_postfix', 'location', 'remarks',
    'features', 'labels',
)
ID_FIELDS = ('type_id', 'status_id', 'subdistrict_id')
NUMERIC_FIELDS = ('size', 'price')
ARRAY_FIELDS = ('features', 'labels')


class PropertyService(BaseService):
    def __init__(self, db):
        super().__init__(db)

    def _property_to_dict(self, prop: Property) -> dict:
        return {
            'id': prop.id,
            'propertyId': prop.property_id,
            'title': prop.title,
            'titleEn': prop.title_en,
            'titleTh': prop.title_th,
            'titleZh': prop.title_zh,
            'type': prop.type,
            'typeId': prop.type_id,
            'status': prop.status,
            'statusId': prop.status_id,
            'province': prop.province,
            'district': prop.district,
            'subDistrict': prop.sub_district,
            'subdistrictId': prop.subdistrict_id,
            'size': prop.size,
            'sizePrefix': prop.size_prefix,
            'price': prop.price,
            'pricePostfix': prop.price_postfix,
            'location': prop.location or '',
            'remarks': prop.remarks or '',
            'features': decode_string_array(prop.features),
            'labels': decode_string_array(prop.labels),
            'createdAt': int(prop.created_at.timestamp() * 1000) if prop.created_at else None,
            'updatedAt': int(prop.updated_at.timestamp() * 1000) if prop.updated_at else None,
        }

    def _clean_changes(self, data: dict) -> dict:
        """Whitelist and coerce request fields; raises ValueError on bad input."""
        changes = {}
        for field in EDITABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field in ID_FIELDS:
                value = coerce_id(value)
            elif field in NUMERIC_FIELDS:
                if value in (None, ''):
                    value = None
                else:
                    try:
                        value = float(value)
                    except (TypeError, ValueError):
                        raise ValueError(f'Invalid number for {field}')
                    if math.isnan(value) or math.isinf(value):
                        raise ValueError(f'Invalid number for {field}')
            elif field in ARRAY_FIELDS:
                value = encode_string_array(value)
            elif isinstance(value, str):
                value = value.strip() or None
            changes[field] = value
        return changes

    def _apply(self, prop: Property, changes: dict, refresh_titles: bool) -> None:
        for field, value in changes.items():
            setattr(prop, field, value)
        if refresh_titles:
            TitleService(self.db).regenerate_for_property(prop, SqlLookupTables(self.db))

    def create_property(self, property_data):
        try:
            if not isinstance(property_data, dict):
                return self._error_response('Invalid request body')
            try:
                changes = self._clean_changes(property_data)
            except ValueError as e:
                return self._error_response(str(e))

            if not changes.get('property_id'):
                return self._error_response('Missing required field: property_id')

            prop = Property()
            self._apply(prop, changes, refresh_titles=True)
            self.db.add(prop)
            self.db.commit()
            self.db.refresh(prop)
            logger.info("Created property %s: %s", prop.property_id, prop.title_en)

            return self._success_response({
                'message': 'Property created successfully',
                'property': self._property_to_dict(prop)
            })
        except IntegrityError:
            self.db.rollback()
            return self._error_response('Property ID already exists')
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Property creation error: %s", e)
            return self._error_response(f'Property creation error: {str(e)}')

    def update_property(self, ref, property_data):
        try:
            prop = Property.find_by_ref(self.db, ref)
            if prop is None:
                return self._error_response('Property not found')
            if not isinstance(property_data, dict):
                return self._error_response('Invalid request body')
            try:
                changes = self._clean_changes(property_data)
            except ValueError as e:
                return self._error_response(str(e))
            if not changes:
                return self._error_response('No valid fields to update')

            changed = {f: v for f, v in changes.items() if getattr(prop, f) != v}
            self._apply(prop, changed, refresh_titles=titles_need_refresh(changed))
            self.db.commit()
            self.db.refresh(prop)

            return self._success_response({
                'message': 'Property updated successfully',
                'property': self._property_to_dict(prop)
            })
        except IntegrityError:
            self.db.rollback()
            return self._error_response('Property ID already exists')
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Property update error for %s: %s", ref, e)
            return self._error_response(f'Property update error: {str(e)}')

    def get_property(self, ref):
        try:
            prop = Property.find_by_ref(self.db, ref)
            if prop is None:
                return self._error_response('Property not found')
            return self._success_response({'property': self._property_to_dict(prop)})
        except SQLAlchemyError as e:
            return self._error_response(f'Error retrieving property: {str(e)}')

    def get_properties(self, filters=None):
        filters = filters or {}
        try:
            try:
                page = max(int(filters.get('page') or 1), 1)
                limit = min(max(int(filters.get('limit') or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
            except (TypeError, ValueError):
                return self._error_response('Invalid pagination parameters')

            q = self.db.query(Property)
            for field in ('type', 'province', 'district'):
                if filters.get(field):
                    q = q.filter(getattr(Property, field).ilike(f"%{filters[field]}%"))

            for key, column, op in (
                ('min_price', Property.price, '__ge__'),
                ('max_price', Property.price, '__le__'),
                ('min_size', Property.size, '__ge__'),
                ('max_size', Property.size, '__le__'),
            ):
                if filters.get(key) not in (None, ''):
                    try:
                        bound = float(filters[key])
                    except (TypeError, ValueError):
                        return self._error_response(f'Invalid {key}')
                    q = q.filter(getattr(column, op)(bound))

            total = q.count()
            rows = q.order_by(Property.id).offset((page - 1) * limit).limit(limit).all()

            return self._success_response({
                'message': 'Properties retrieved successfully',
                'properties': [self._property_to_dict(p) for p in rows],
                'pagination': {
                    'page': page,
                    'limit': limit,
                    'total': total,
                    'pages': math.ceil(total / limit) if total else 0,
                },
            })
        except SQLAlchemyError as e:
            return self._error_response(f'Error retrieving properties: {str(e)}')
